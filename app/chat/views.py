"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ConversationViewSet: Direct conversation list, create and detail
- MessageViewSet: Message operations (nested under conversation)

URL Structure:
    /api/v1/chat/conversations/                          GET, POST
    /api/v1/chat/conversations/{id}/                     GET
    /api/v1/chat/conversations/{id}/messages/            GET, POST
    /api/v1/chat/conversations/{id}/messages/{pk}/       PATCH, DELETE

Design Decisions:
    - All operations use the service layer; message mutations go through
      MessageFanout so a REST write is broadcast to the conversation room
      exactly like a websocket write
    - Participation is checked by the services on every call, never cached
    - Service error codes map to HTTP statuses through ERROR_STATUS
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import (
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from chat.constants import ErrorCode
from chat.fanout import MessageFanout
from chat.pagination import MessageCursorPagination
from chat.serializers import (
    ConversationCreateSerializer,
    ConversationSerializer,
    MessageCreateSerializer,
    MessageEditSerializer,
    MessageSerializer,
)
from chat.services import ConversationService, MessageService

logger = logging.getLogger(__name__)


ERROR_STATUS = {
    ErrorCode.NOT_PARTICIPANT: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_AUTHOR: status.HTTP_403_FORBIDDEN,
    ErrorCode.CONVERSATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.MESSAGE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.PERSISTENCE_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def error_response(result) -> Response:
    """Translate a failed ServiceResult into an HTTP response."""
    return Response(
        {"error": result.error, "error_code": result.error_code},
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


@extend_schema_view(
    list=extend_schema(
        operation_id="list_conversations",
        summary="List conversations",
        responses={200: ConversationSerializer(many=True)},
        tags=["Chat - Conversations"],
    ),
    create=extend_schema(
        operation_id="create_conversation",
        summary="Create or get direct conversation",
        request=ConversationCreateSerializer,
        responses={
            201: OpenApiResponse(
                response=ConversationSerializer, description="Conversation created"
            ),
            200: OpenApiResponse(
                response=ConversationSerializer,
                description="Conversation already existed",
            ),
            400: OpenApiResponse(description="Self conversation or unknown user"),
        },
        tags=["Chat - Conversations"],
    ),
    retrieve=extend_schema(
        operation_id="get_conversation",
        summary="Get conversation",
        responses={200: ConversationSerializer},
        tags=["Chat - Conversations"],
    ),
)
class ConversationViewSet(viewsets.GenericViewSet):
    """
    ViewSet for conversation operations.

    list:
        All conversations the current user participates in, newest
        activity first, each with a last message preview. Not paginated.

    create:
        Start a direct conversation with another user. Returns the existing
        conversation (200) if the pair already has one, otherwise 201.

    retrieve:
        Conversation details including participants.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ConversationSerializer
    lookup_value_regex = r"\d+"

    def list(self, request):
        conversations = ConversationService.list_for_user(request.user)
        return Response(ConversationSerializer(conversations, many=True).data)

    def create(self, request):
        serializer = ConversationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ConversationService.get_or_create_direct(
            user=request.user,
            other_user_id=serializer.validated_data["other_user_id"],
        )
        if not result.success:
            return error_response(result)

        conversation, created = result.data
        return Response(
            ConversationSerializer(conversation).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        result = ConversationService.get_for_participant(int(pk), request.user.id)
        if not result.success:
            return error_response(result)
        return Response(ConversationSerializer(result.data).data)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_messages",
        summary="List messages",
        description="Messages oldest first, including deleted tombstones.",
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    ),
    create=extend_schema(
        operation_id="send_message",
        summary="Send message",
        request=MessageCreateSerializer,
        responses={
            201: MessageSerializer,
            400: OpenApiResponse(description="Empty or too long content"),
            403: OpenApiResponse(description="Not a participant"),
            404: OpenApiResponse(description="Conversation not found"),
            503: OpenApiResponse(description="Message could not be saved"),
        },
        tags=["Chat - Messages"],
    ),
    partial_update=extend_schema(
        operation_id="edit_message",
        summary="Edit message",
        description="Replace the content of a message you sent.",
        request=MessageEditSerializer,
        responses={
            200: MessageSerializer,
            400: OpenApiResponse(description="Empty content or deleted message"),
            403: OpenApiResponse(description="Not the author or not a participant"),
            404: OpenApiResponse(description="Message not found"),
        },
        tags=["Chat - Messages"],
    ),
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        description="Soft delete a message you sent. Returns the tombstone.",
        responses={
            200: MessageSerializer,
            403: OpenApiResponse(description="Not the author or not a participant"),
            404: OpenApiResponse(description="Message not found"),
        },
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(viewsets.GenericViewSet):
    """
    ViewSet for message operations within a conversation.

    list:
        Messages of the conversation, cursor paginated, oldest first.

    create:
        Send a message. Broadcast as message:new to the conversation room.

    partial_update:
        Edit own message. Broadcast as message:updated.

    destroy:
        Soft delete own message. Broadcast as message:deleted.
    """

    permission_classes = [IsAuthenticated]
    pagination_class = MessageCursorPagination
    serializer_class = MessageSerializer

    def get_fanout(self) -> MessageFanout:
        return MessageFanout()

    def list(self, request, conversation_pk=None):
        result = MessageService.list_messages(conversation_pk, request.user.id)
        if not result.success:
            return error_response(result)

        page = self.paginate_queryset(result.data)
        if page is not None:
            return self.get_paginated_response(MessageSerializer(page, many=True).data)
        return Response(MessageSerializer(result.data, many=True).data)

    def create(self, request, conversation_pk=None):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_fanout().send_message(
            conversation_id=conversation_pk,
            sender_id=request.user.id,
            content=serializer.validated_data["content"],
            reply_to_id=serializer.validated_data.get("reply_to_id"),
        )
        if not result.success:
            return error_response(result)

        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, conversation_pk=None, pk=None):
        serializer = MessageEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self.get_fanout().edit_message(
            conversation_id=conversation_pk,
            message_id=pk,
            user_id=request.user.id,
            new_content=serializer.validated_data["content"],
        )
        if not result.success:
            return error_response(result)

        return Response(MessageSerializer(result.data).data)

    def destroy(self, request, conversation_pk=None, pk=None):
        result = self.get_fanout().delete_message(
            conversation_id=conversation_pk,
            message_id=pk,
            user_id=request.user.id,
        )
        if not result.success:
            return error_response(result)

        return Response(MessageSerializer(result.data).data)
