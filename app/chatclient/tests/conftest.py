"""
Fixtures and fakes for chatclient tests.

The client never touches Django; these tests run against in-process fakes
for the REST API, the websocket connection and the OS surfaces.
"""

import pytest

from chatclient.api import ChatApiUnavailableError
from chatclient.config import ClientConfig
from chatclient.delivery import DeliveryBridge
from chatclient.state import MemoryStateStore
from chatclient.unread import LocalUnreadCounter

LOCAL_USER_ID = 1
OTHER_USER_ID = 2


class FakeApi:
    """Stands in for ChatApiClient; set `*_error` attributes to make a call fail."""

    def __init__(self):
        self.conversations = []
        self.messages = {}
        self.friend_requests = []
        self.sent = []
        self.conversations_error = None
        self.messages_error = None
        self.friends_error = None
        self.send_error = None

    async def list_conversations(self):
        if self.conversations_error:
            raise self.conversations_error
        return self.conversations

    async def list_messages(self, conversation_id, page_size=None):
        if self.messages_error:
            raise self.messages_error
        return list(self.messages.get(conversation_id, []))

    async def list_received_friend_requests(self):
        if self.friends_error:
            raise self.friends_error
        return self.friend_requests

    async def send_message(self, conversation_id, content, reply_to_id=None):
        if self.send_error:
            raise self.send_error
        self.sent.append((conversation_id, content, reply_to_id))
        return {"id": len(self.sent), "conversation_id": conversation_id, "content": content}


class RecordingConnection:
    """RoomJoiner that records joins."""

    def __init__(self, connected=True):
        self.connected = connected
        self.joined = []

    async def join(self, conversation_id):
        self.joined.append(conversation_id)
        return self.connected


class FakeSound:
    def __init__(self, unlocked=True, enabled=True):
        self.unlocked = unlocked
        self.enabled = enabled
        self.plays = 0

    def play(self):
        self.plays += 1


class FakeNotifier:
    def __init__(self, granted=True):
        self.granted = granted
        self.shown = []

    def permission_granted(self):
        return self.granted

    def notify(self, title, body):
        self.shown.append((title, body))


class FakeBadge:
    def __init__(self):
        self.rendered = []

    def render(self, total):
        self.rendered.append(total)


class BrokenSurface:
    """Raises from every signal method."""

    unlocked = True
    enabled = True

    def play(self):
        raise RuntimeError("audio device gone")

    def permission_granted(self):
        return True

    def notify(self, title, body):
        raise RuntimeError("notification daemon gone")

    def render(self, total):
        raise RuntimeError("badge surface gone")


def rest_message(message_id, conversation_id=10, sender_id=OTHER_USER_ID, **overrides):
    message = {
        "id": message_id,
        "conversation_id": conversation_id,
        "sender_id": sender_id,
        "content": f"message {message_id}",
        "created_at": f"2026-01-01T00:00:{message_id:02d}Z",
        "edited_at": None,
        "deleted_at": None,
        "is_deleted": False,
        "reply_to_id": None,
    }
    message.update(overrides)
    return message


def push_message(message_id, conversation_id=10, sender_id=OTHER_USER_ID, **overrides):
    message = {
        "id": message_id,
        "conversationId": conversation_id,
        "senderId": sender_id,
        "content": f"message {message_id}",
        "createdAt": f"2026-01-01T00:00:{message_id:02d}Z",
        "editedAt": None,
        "deletedAt": None,
        "isDeleted": False,
        "replyToId": None,
    }
    message.update(overrides)
    return message


@pytest.fixture
def config():
    return ClientConfig(
        api_url="http://testserver/api/v1",
        ws_url="ws://testserver/ws/chat/",
        token="access-token",
        rejoin_interval=0.01,
        friend_poll_interval=0.01,
    )


@pytest.fixture
def store():
    return MemoryStateStore()


@pytest.fixture
def unread(store):
    return LocalUnreadCounter(store)


@pytest.fixture
def sound():
    return FakeSound()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def badge():
    return FakeBadge()


@pytest.fixture
def bridge(unread, store, sound, notifier, badge):
    return DeliveryBridge(
        local_user_id=LOCAL_USER_ID,
        unread=unread,
        store=store,
        sound=sound,
        notifier=notifier,
        badges=[badge],
    )


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def unavailable():
    return ChatApiUnavailableError("server down", status_code=503)
