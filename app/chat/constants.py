"""
Constants and configuration for the chat module.

This module centralizes configuration values for:
- Message operations (content limits)
- Realtime delivery (group names, close codes)
- Error codes shared by the REST and websocket transports

Values backed by settings.CHAT_REALTIME are read once at import time.
Import example:
    from chat.constants import MESSAGE_CONFIG, REALTIME_CONFIG, ErrorCode
"""

from typing import Final

from django.conf import settings

_REALTIME = getattr(settings, "CHAT_REALTIME", {})


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_CONTENT_LENGTH: Final[int] = _REALTIME.get("MAX_CONTENT_LENGTH", 10000)

    # Page size for GET conversations/{id}/messages/
    PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100

    # Characters of the last message included in conversation list previews
    PREVIEW_LENGTH: Final[int] = 100


# =============================================================================
# Realtime Configuration
# =============================================================================


class REALTIME_CONFIG:
    """Configuration for the websocket layer."""

    # Group joined by every connection; carries user:online / user:offline
    PRESENCE_GROUP: Final[str] = _REALTIME.get("PRESENCE_GROUP", "presence")

    # A conversation's room is f"{ROOM_PREFIX}{conversation_id}"
    ROOM_PREFIX: Final[str] = _REALTIME.get("ROOM_PREFIX", "conv_")

    # Close codes (4000-4999 are application-defined)
    CLOSE_UNAUTHENTICATED: Final[int] = 4001


def room_group_name(conversation_id: int) -> str:
    """Channels group name for a conversation room."""
    return f"{REALTIME_CONFIG.ROOM_PREFIX}{conversation_id}"


# =============================================================================
# Error Codes
# =============================================================================


class ErrorCode:
    """Error codes returned by chat services and surfaced to clients."""

    NOT_PARTICIPANT: Final[str] = "NOT_PARTICIPANT"
    NOT_AUTHOR: Final[str] = "NOT_AUTHOR"
    CONVERSATION_NOT_FOUND: Final[str] = "CONVERSATION_NOT_FOUND"
    MESSAGE_NOT_FOUND: Final[str] = "MESSAGE_NOT_FOUND"
    USER_NOT_FOUND: Final[str] = "USER_NOT_FOUND"
    SELF_CONVERSATION: Final[str] = "SELF_CONVERSATION"
    EMPTY_CONTENT: Final[str] = "EMPTY_CONTENT"
    CONTENT_TOO_LONG: Final[str] = "CONTENT_TOO_LONG"
    MESSAGE_DELETED: Final[str] = "MESSAGE_DELETED"
    INVALID_PAYLOAD: Final[str] = "INVALID_PAYLOAD"
    UNKNOWN_EVENT: Final[str] = "UNKNOWN_EVENT"
    PERSISTENCE_FAILED: Final[str] = "PERSISTENCE_FAILED"
