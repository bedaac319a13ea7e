"""
Views for the friends API.

URL Structure:
    /api/v1/friends/requests/                  POST
    /api/v1/friends/requests/received/         GET
    /api/v1/friends/requests/sent/             GET
    /api/v1/friends/requests/{id}/accept/      POST
    /api/v1/friends/requests/{id}/decline/     POST
    /api/v1/friends/list/                      GET
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import UserSummarySerializer
from friends.serializers import FriendRequestCreateSerializer, FriendRequestSerializer
from friends.services import FriendErrorCode, FriendService

ERROR_STATUS = {
    FriendErrorCode.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FriendErrorCode.REQUEST_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FriendErrorCode.NOT_RECEIVER: status.HTTP_403_FORBIDDEN,
    FriendErrorCode.PERSISTENCE_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(result) -> Response:
    return Response(
        {"error": result.error, "error_code": result.error_code},
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


class FriendRequestCreateView(APIView):
    """Send a friend request. Re-sending while pending returns the same request."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="send_friend_request",
        summary="Send friend request",
        request=FriendRequestCreateSerializer,
        responses={
            201: FriendRequestSerializer,
            200: OpenApiResponse(
                response=FriendRequestSerializer,
                description="Request already pending",
            ),
            400: OpenApiResponse(description="Request to self or already friends"),
            404: OpenApiResponse(description="User not found"),
        },
        tags=["Friends"],
    )
    def post(self, request):
        serializer = FriendRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = FriendService.send_request(
            sender=request.user,
            receiver_id=serializer.validated_data["receiver_id"],
        )
        if not result.success:
            return error_response(result)

        friend_request, created = result.data
        return Response(
            FriendRequestSerializer(friend_request).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class ReceivedFriendRequestsView(APIView):
    """Pending requests addressed to the current user."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_received_friend_requests",
        summary="List received friend requests",
        responses={200: FriendRequestSerializer(many=True)},
        tags=["Friends"],
    )
    def get(self, request):
        pending = FriendService.pending_received(request.user)
        return Response(FriendRequestSerializer(pending, many=True).data)


class SentFriendRequestsView(APIView):
    """Pending requests the current user has sent and that await an answer."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_sent_friend_requests",
        summary="List sent friend requests",
        responses={200: FriendRequestSerializer(many=True)},
        tags=["Friends"],
    )
    def get(self, request):
        pending = FriendService.pending_sent(request.user)
        return Response(FriendRequestSerializer(pending, many=True).data)


class FriendRequestRespondView(APIView):
    """Accept or decline a request. Only the receiver may respond."""

    permission_classes = [IsAuthenticated]
    decision = "accept"

    @extend_schema(
        request=None,
        responses={
            200: FriendRequestSerializer,
            400: OpenApiResponse(description="Request is not pending"),
            403: OpenApiResponse(description="Not the receiver"),
            404: OpenApiResponse(description="Request not found"),
        },
        tags=["Friends"],
    )
    def post(self, request, pk):
        if self.decision == "accept":
            result = FriendService.accept(pk, request.user)
        else:
            result = FriendService.decline(pk, request.user)
        if not result.success:
            return error_response(result)
        return Response(FriendRequestSerializer(result.data).data)


class FriendListView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_friends",
        summary="List friends",
        responses={200: UserSummarySerializer(many=True)},
        tags=["Friends"],
    )
    def get(self, request):
        friends = FriendService.list_friends(request.user)
        return Response(UserSummarySerializer(friends, many=True).data)
