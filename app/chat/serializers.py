"""
Serializers for chat API.

This module provides serializers for the REST side of chat:
- Conversation serializers (list/detail, create)
- Participant serializer (read)
- Message serializers (read, create, edit)

Serializer Hierarchy:
    ConversationSerializer: Conversation with participants and last message
    ConversationCreateSerializer: Direct conversation creation

    ParticipantSerializer: Participant with user info

    MessageSerializer: Message with soft-delete fields
    MessagePreviewSerializer: Minimal message for list preview
    MessageCreateSerializer: Send new message
    MessageEditSerializer: Replace content of an own message

Design Decisions:
    - Read and write serializers are separate for clarity
    - REST payloads are snake_case; websocket payloads (chat.events) are
      camelCase and built separately
    - Deleted messages serialize with empty content and deleted_at set,
      the same tombstone the websocket sends
    - Content emptiness and length are checked by MessageService so that
      both transports return the same error codes
"""

from __future__ import annotations

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from chat.constants import MESSAGE_CONFIG
from chat.models import Conversation, Message, Participant


# =============================================================================
# Message Serializers
# =============================================================================


class MessagePreviewSerializer(serializers.ModelSerializer):
    """
    Minimal message serializer for conversation list preview.

    Content is truncated to MESSAGE_CONFIG.PREVIEW_LENGTH characters.
    """

    content = serializers.SerializerMethodField(
        help_text="Message content, truncated (empty if deleted)"
    )

    class Meta:
        model = Message
        fields = [
            "id",
            "sender_id",
            "content",
            "is_deleted",
            "created_at",
        ]
        read_only_fields = fields

    def get_content(self, obj: Message) -> str:
        return obj.content[: MESSAGE_CONFIG.PREVIEW_LENGTH]


class MessageSerializer(serializers.ModelSerializer):
    """Full message serializer for message lists and mutation responses."""

    sender = UserSummarySerializer(read_only=True)
    reply_to_id = serializers.IntegerField(read_only=True, allow_null=True)
    is_edited = serializers.BooleanField(read_only=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "conversation_id",
            "sender_id",
            "sender",
            "content",
            "reply_to_id",
            "is_edited",
            "edited_at",
            "is_deleted",
            "deleted_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    """
    Serializer for sending a new message.

    reply_to_id pointing outside the conversation is not an error; the
    message is sent without a reply reference.
    """

    content = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
        help_text="Message text",
    )
    reply_to_id = serializers.IntegerField(
        required=False,
        allow_null=True,
        min_value=1,
        help_text="ID of a message in the same conversation to reply to",
    )


class MessageEditSerializer(serializers.Serializer):
    """Serializer for editing message content."""

    content = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
        help_text="New message content",
    )


# =============================================================================
# Participant Serializers
# =============================================================================


class ParticipantSerializer(serializers.ModelSerializer):
    """Participant with embedded user summary."""

    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = Participant
        fields = ["id", "user", "joined_at", "left_at"]
        read_only_fields = fields


# =============================================================================
# Conversation Serializers
# =============================================================================


class ConversationSerializer(serializers.ModelSerializer):
    """
    Conversation with participants and last message preview.

    last_message is read from the attribute ConversationService.list_for_user
    attaches; for a single conversation it is looked up directly.
    """

    participants = serializers.SerializerMethodField()
    last_message = serializers.SerializerMethodField()

    class Meta:
        model = Conversation
        fields = [
            "id",
            "participants",
            "last_message",
            "last_message_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_participants(self, obj: Conversation) -> list[dict]:
        participants = [p for p in obj.participants.all() if p.left_at is None]
        return ParticipantSerializer(participants, many=True).data

    def get_last_message(self, obj: Conversation) -> dict | None:
        if hasattr(obj, "last_message"):
            message = obj.last_message
        else:
            message = obj.messages.order_by("-created_at", "-id").first()
        if message is None:
            return None
        return MessagePreviewSerializer(message).data


class ConversationCreateSerializer(serializers.Serializer):
    """Serializer for starting (or fetching) a direct conversation."""

    other_user_id = serializers.IntegerField(
        min_value=1,
        help_text="The user to start a conversation with",
    )
