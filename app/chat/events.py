"""
Realtime event vocabulary for the chat websocket.

Inbound events are a closed set of tagged variants. parse_client_event()
validates the raw JSON against the serializer for its "type" and returns a
typed dataclass; anything else raises core.exceptions.ValidationError before
the consumer dispatches it. Handlers never see unvalidated fields.

Outbound events are built here too, so the websocket path and the REST path
put byte-for-byte identical payloads on the channel layer.

Wire format (camelCase, matching what browser clients already consume):

    client -> server
        {"type": "conversation:join",  "conversationId": 10}
        {"type": "conversation:leave", "conversationId": 10}
        {"type": "typing",             "conversationId": 10}
        {"type": "message:send",       "conversationId": 10,
         "content": "hello", "replyToId": 41}

    server -> client
        {"type": "user:online",  "userId": 1, "lastSeen": "..."}
        {"type": "user:offline", "userId": 1, "lastSeen": "..."}
        {"type": "user:typing",  "conversationId": 10, "userId": 1}
        {"type": "message:new" | "message:updated" | "message:deleted",
         "conversationId": 10, "message": {...}}
        {"type": "error", "event": "message:send", "error": "...",
         "errorCode": "NOT_PARTICIPANT"}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from rest_framework import serializers

from chat.constants import MESSAGE_CONFIG, ErrorCode
from core.exceptions import ValidationError

if TYPE_CHECKING:
    from datetime import datetime

    from chat.models import Message


class EventType:
    """Event names used on the websocket."""

    # client -> server
    CONVERSATION_JOIN: Final[str] = "conversation:join"
    CONVERSATION_LEAVE: Final[str] = "conversation:leave"
    TYPING: Final[str] = "typing"
    MESSAGE_SEND: Final[str] = "message:send"

    # server -> client
    USER_ONLINE: Final[str] = "user:online"
    USER_OFFLINE: Final[str] = "user:offline"
    USER_TYPING: Final[str] = "user:typing"
    MESSAGE_NEW: Final[str] = "message:new"
    MESSAGE_UPDATED: Final[str] = "message:updated"
    MESSAGE_DELETED: Final[str] = "message:deleted"
    ERROR: Final[str] = "error"


# =============================================================================
# Inbound variants
# =============================================================================


@dataclass(frozen=True)
class JoinConversation:
    conversation_id: int


@dataclass(frozen=True)
class LeaveConversation:
    conversation_id: int


@dataclass(frozen=True)
class Typing:
    conversation_id: int


@dataclass(frozen=True)
class SendMessage:
    conversation_id: int
    content: str
    reply_to_id: int | None = None


ClientEvent = JoinConversation | LeaveConversation | Typing | SendMessage


class ConversationEventSerializer(serializers.Serializer):
    conversationId = serializers.IntegerField(min_value=1)


class SendMessageEventSerializer(ConversationEventSerializer):
    # Emptiness is checked by MessageService so both transports share the
    # EMPTY_CONTENT error code.
    content = serializers.CharField(
        allow_blank=True,
        trim_whitespace=False,
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
    )
    replyToId = serializers.IntegerField(min_value=1, required=False, allow_null=True)


_INBOUND: dict[str, tuple[type[serializers.Serializer], Any]] = {
    EventType.CONVERSATION_JOIN: (
        ConversationEventSerializer,
        lambda data: JoinConversation(data["conversationId"]),
    ),
    EventType.CONVERSATION_LEAVE: (
        ConversationEventSerializer,
        lambda data: LeaveConversation(data["conversationId"]),
    ),
    EventType.TYPING: (
        ConversationEventSerializer,
        lambda data: Typing(data["conversationId"]),
    ),
    EventType.MESSAGE_SEND: (
        SendMessageEventSerializer,
        lambda data: SendMessage(
            conversation_id=data["conversationId"],
            content=data["content"],
            reply_to_id=data.get("replyToId"),
        ),
    ),
}


def parse_client_event(content: Any) -> ClientEvent:
    """
    Validate a raw inbound websocket message.

    Raises:
        ValidationError: error_code UNKNOWN_EVENT for an unrecognised or
            missing "type", INVALID_PAYLOAD with field details otherwise
    """
    if not isinstance(content, dict):
        raise ValidationError(
            "Event must be a JSON object", error_code=ErrorCode.INVALID_PAYLOAD
        )

    event_type = content.get("type")
    if not isinstance(event_type, str) or event_type not in _INBOUND:
        raise ValidationError(
            f"Unknown event type: {event_type!r}",
            error_code=ErrorCode.UNKNOWN_EVENT,
        )

    serializer_class, build = _INBOUND[event_type]
    serializer = serializer_class(data=content)
    if not serializer.is_valid():
        raise ValidationError(
            f"Invalid {event_type} payload",
            error_code=ErrorCode.INVALID_PAYLOAD,
            details=serializer.errors,
        )
    return build(serializer.validated_data)


# =============================================================================
# Outbound payloads
# =============================================================================


class SenderPayloadSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    displayName = serializers.CharField(source="display_name")
    avatarUrl = serializers.CharField(source="avatar_url")


class MessagePayloadSerializer(serializers.Serializer):
    """Canonical message shape shared by message:new/updated/deleted."""

    id = serializers.IntegerField()
    conversationId = serializers.IntegerField(source="conversation_id")
    senderId = serializers.IntegerField(source="sender_id")
    content = serializers.CharField()
    createdAt = serializers.DateTimeField(source="created_at")
    editedAt = serializers.DateTimeField(source="edited_at")
    deletedAt = serializers.DateTimeField(source="deleted_at")
    isDeleted = serializers.BooleanField(source="is_deleted")
    replyToId = serializers.IntegerField(source="reply_to_id")
    sender = SenderPayloadSerializer()


def message_event(event_type: str, message: Message) -> dict[str, Any]:
    """Build a message:new / message:updated / message:deleted payload."""
    return {
        "type": event_type,
        "conversationId": message.conversation_id,
        "message": dict(MessagePayloadSerializer(message).data),
    }


def presence_event(event_type: str, user_id: int, last_seen: datetime | None) -> dict[str, Any]:
    """Build a user:online / user:offline payload."""
    return {
        "type": event_type,
        "userId": user_id,
        "lastSeen": serializers.DateTimeField().to_representation(last_seen)
        if last_seen
        else None,
    }


def typing_event(conversation_id: int, user_id: int) -> dict[str, Any]:
    return {
        "type": EventType.USER_TYPING,
        "conversationId": conversation_id,
        "userId": user_id,
    }


def error_event(
    event: str | None,
    error: str,
    error_code: str | None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Socket error acknowledgement sent only to the originating connection."""
    payload: dict[str, Any] = {
        "type": EventType.ERROR,
        "event": event,
        "error": error,
        "errorCode": error_code,
    }
    if details:
        payload["details"] = details
    return payload
