"""
Authentication views.

This module provides API views for:
- Registration (email/password)
- Current user read/update, including explicit presence state
- User search

Token issuance uses simplejwt's TokenObtainPairView/TokenRefreshView
directly (see urls.py); the realtime layer accepts the same access tokens.

Related files:
    - serializers.py: Request/response serialization
    - services.py: PresenceService, UserSearchService
    - urls.py: URL routing
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import (
    ProfileUpdateSerializer,
    RegisterSerializer,
    UserSearchQuerySerializer,
    UserSerializer,
    UserSummarySerializer,
)
from authentication.services import PresenceService, UserSearchService


class RegisterView(APIView):
    """
    Create an account.

    URL: /api/v1/auth/register/
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Register",
        description="Create an account with email, username and password.",
        tags=["Auth"],
        request=RegisterSerializer,
        responses={201: UserSerializer},
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


class MeView(APIView):
    """
    API view for the current user.

    GET: Retrieve current user
    PATCH: Update username, display name, avatar URL or presence state

    URL: /api/v1/auth/me/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get current user",
        tags=["Auth"],
        responses={200: UserSerializer},
    )
    def get(self, request):
        return Response(UserSerializer(request.user).data)

    @extend_schema(
        summary="Update current user",
        description=(
            "Partial update. presence_state accepts any presence value; the "
            "realtime connection resets it to available on the next connect."
        ),
        tags=["Auth"],
        request=ProfileUpdateSerializer,
        responses={200: UserSerializer},
    )
    def patch(self, request):
        serializer = ProfileUpdateSerializer(
            request.user, data=request.data, partial=True
        )
        serializer.is_valid(raise_exception=True)

        # ChoiceField already restricted the value to PresenceState
        presence_state = serializer.validated_data.pop("presence_state", None)
        user = serializer.save()
        if presence_state is not None:
            PresenceService.set_state(user, presence_state)

        return Response(UserSerializer(user).data)


class UserSearchView(APIView):
    """
    Find other users to start a conversation or friendship with.

    GET: ?q=<text>&visible_only=<bool>&mood=<label>

    URL: /api/v1/auth/users/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Search users",
        description=(
            "Case-insensitive match on username, display name or email. "
            "The caller is never included; at most 50 results."
        ),
        tags=["Auth"],
        parameters=[UserSearchQuerySerializer],
        responses={200: UserSummarySerializer(many=True)},
    )
    def get(self, request):
        params = UserSearchQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)

        users = UserSearchService.search(
            request.user,
            query=params.validated_data.get("q", ""),
            visible_only=params.validated_data["visible_only"],
            mood=params.validated_data.get("mood", ""),
        )
        return Response(UserSummarySerializer(users, many=True).data)
