"""
Tests for the realtime event vocabulary.

parse_client_event() is the only way inbound socket data reaches a handler,
so malformed input must be rejected here with a stable error code.
"""

import pytest

from chat.constants import MESSAGE_CONFIG, ErrorCode
from chat.events import (
    EventType,
    JoinConversation,
    LeaveConversation,
    SendMessage,
    Typing,
    error_event,
    message_event,
    parse_client_event,
    presence_event,
    typing_event,
)
from chat.tests.factories import MessageFactory
from core.exceptions import ValidationError


class TestParseClientEvent:
    """Tests for parse_client_event()."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ({"type": "conversation:join", "conversationId": 10}, JoinConversation(10)),
            ({"type": "conversation:leave", "conversationId": 10}, LeaveConversation(10)),
            ({"type": "typing", "conversationId": 3}, Typing(3)),
            (
                {"type": "message:send", "conversationId": 10, "content": "hi"},
                SendMessage(conversation_id=10, content="hi"),
            ),
            (
                {"type": "message:send", "conversationId": 10, "content": "hi", "replyToId": 4},
                SendMessage(conversation_id=10, content="hi", reply_to_id=4),
            ),
        ],
    )
    def test_valid_events_become_typed_variants(self, raw, expected):
        assert parse_client_event(raw) == expected

    def test_numeric_string_id_is_coerced(self):
        assert parse_client_event(
            {"type": "conversation:join", "conversationId": "12"}
        ) == JoinConversation(12)

    def test_null_reply_to_is_allowed(self):
        event = parse_client_event(
            {"type": "message:send", "conversationId": 1, "content": "x", "replyToId": None}
        )

        assert event.reply_to_id is None

    def test_blank_content_passes_parsing(self):
        """
        Emptiness is the service's call, not the parser's.

        Why it matters: REST and socket report the same EMPTY_CONTENT code.
        """
        event = parse_client_event({"type": "message:send", "conversationId": 1, "content": "  "})

        assert event.content == "  "

    @pytest.mark.parametrize(
        "raw",
        [
            {"conversationId": 1},
            {"type": "message:explode", "conversationId": 1},
            {"type": 7, "conversationId": 1},
        ],
    )
    def test_unknown_type(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            parse_client_event(raw)

        assert exc_info.value.error_code == ErrorCode.UNKNOWN_EVENT

    @pytest.mark.parametrize("raw", [["conversation:join", 1], "typing", None, 42])
    def test_non_object_payload(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            parse_client_event(raw)

        assert exc_info.value.error_code == ErrorCode.INVALID_PAYLOAD

    @pytest.mark.parametrize(
        "raw",
        [
            {"type": "conversation:join"},
            {"type": "conversation:join", "conversationId": 0},
            {"type": "conversation:join", "conversationId": -5},
            {"type": "typing", "conversationId": "abc"},
            {"type": "message:send", "conversationId": 1},
            {"type": "message:send", "conversationId": 1, "content": "x", "replyToId": 0},
        ],
    )
    def test_invalid_payload_reports_fields(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            parse_client_event(raw)

        assert exc_info.value.error_code == ErrorCode.INVALID_PAYLOAD
        assert exc_info.value.details

    def test_content_over_limit_is_invalid(self):
        raw = {
            "type": "message:send",
            "conversationId": 1,
            "content": "x" * (MESSAGE_CONFIG.MAX_CONTENT_LENGTH + 1),
        }

        with pytest.raises(ValidationError) as exc_info:
            parse_client_event(raw)

        assert "content" in exc_info.value.details

    def test_client_supplied_sender_is_ignored(self):
        """
        Extra fields such as senderId never reach the handler.

        Why it matters: Identity comes from the handshake, never the payload.
        """
        event = parse_client_event(
            {"type": "message:send", "conversationId": 1, "content": "x", "senderId": 99}
        )

        assert not hasattr(event, "sender_id")


@pytest.mark.django_db
class TestMessageEvent:
    """Tests for message_event()."""

    def test_payload_shape(self, conversation, alice):
        message = MessageFactory(conversation=conversation, sender=alice, content="hello")

        payload = message_event(EventType.MESSAGE_NEW, message)

        assert payload["type"] == "message:new"
        assert payload["conversationId"] == conversation.id
        body = payload["message"]
        assert body["id"] == message.id
        assert body["conversationId"] == conversation.id
        assert body["senderId"] == alice.id
        assert body["content"] == "hello"
        assert body["isDeleted"] is False
        assert body["editedAt"] is None
        assert body["replyToId"] is None
        assert body["sender"]["username"] == alice.username

    def test_deleted_payload_is_tombstone(self, conversation, alice):
        message = MessageFactory(conversation=conversation, sender=alice)
        message.soft_delete()

        body = message_event(EventType.MESSAGE_DELETED, message)["message"]

        assert body["content"] == ""
        assert body["isDeleted"] is True
        assert body["deletedAt"] is not None


class TestOutboundBuilders:
    def test_presence_event_without_last_seen(self):
        assert presence_event(EventType.USER_OFFLINE, 5, None) == {
            "type": "user:offline",
            "userId": 5,
            "lastSeen": None,
        }

    def test_typing_event(self):
        assert typing_event(10, 1) == {
            "type": "user:typing",
            "conversationId": 10,
            "userId": 1,
        }

    def test_error_event_omits_empty_details(self):
        payload = error_event("message:send", "nope", ErrorCode.NOT_PARTICIPANT)

        assert payload == {
            "type": "error",
            "event": "message:send",
            "error": "nope",
            "errorCode": "NOT_PARTICIPANT",
        }

    def test_error_event_includes_details(self):
        payload = error_event(None, "bad", ErrorCode.INVALID_PAYLOAD, {"conversationId": ["x"]})

        assert payload["details"] == {"conversationId": ["x"]}
