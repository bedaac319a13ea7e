"""
End-to-end tests across both transports.

A REST write and a websocket session share one channel layer here, so these
tests exercise the whole path: HTTP view -> MessageService -> MessageFanout
-> channel layer -> RealtimeConsumer -> socket.
"""

import pytest
from channels.db import database_sync_to_async

from chat.tests.conftest import open_socket, receive_until

pytestmark = [pytest.mark.asyncio, pytest.mark.django_db(transaction=True)]

CONVERSATIONS_URL = "/api/v1/chat/conversations/"


def messages_url(conversation_id):
    return f"{CONVERSATIONS_URL}{conversation_id}/messages/"


async def rest(client, method, url, data=None):
    call = getattr(client, method)
    if data is None:
        return await database_sync_to_async(call)(url)
    return await database_sync_to_async(call)(url, data, format="json")


async def join(communicator, conversation_id):
    await communicator.send_json_to(
        {"type": "conversation:join", "conversationId": conversation_id}
    )
    await communicator.receive_nothing(timeout=0.05)


class TestRestAndSocketShareOneBroadcast:
    async def test_rest_send_reaches_socket_exactly_once(
        self, ws_app, alice, bob, conversation, alice_client
    ):
        """
        Why it matters: The REST path and the socket path must not both
        broadcast, or every client renders the message twice.
        """
        bob_socket = await open_socket(ws_app, bob)
        await receive_until(bob_socket, "user:online")
        await join(bob_socket, conversation.id)

        response = await rest(
            alice_client, "post", messages_url(conversation.id), {"content": "via rest"}
        )

        assert response.status_code == 201
        event = await receive_until(bob_socket, "message:new")
        assert event["message"]["id"] == response.data["id"]
        assert event["message"]["content"] == "via rest"
        assert await bob_socket.receive_nothing()
        await bob_socket.disconnect()


class TestConversationLifecycle:
    async def test_create_join_send_edit_delete(self, ws_app, alice, bob, alice_client):
        """
        Users 1 and 2 start a conversation, both join, 1 sends "hello",
        edits it to "hello there", then deletes it. User 2 sees each step
        once and ends up with a tombstone.
        """
        created = await rest(
            alice_client, "post", CONVERSATIONS_URL, {"other_user_id": bob.id}
        )
        assert created.status_code == 201
        conversation_id = created.data["id"]

        alice_socket = await open_socket(ws_app, alice)
        bob_socket = await open_socket(ws_app, bob)
        await receive_until(alice_socket, "user:online")
        await receive_until(alice_socket, "user:online")
        await receive_until(bob_socket, "user:online")
        await join(alice_socket, conversation_id)
        await join(bob_socket, conversation_id)

        await alice_socket.send_json_to(
            {"type": "message:send", "conversationId": conversation_id, "content": "hello"}
        )
        new = await receive_until(bob_socket, "message:new")
        await receive_until(alice_socket, "message:new")
        message_id = new["message"]["id"]
        assert new["message"]["content"] == "hello"
        assert new["message"]["senderId"] == alice.id

        url = f"{messages_url(conversation_id)}{message_id}/"
        edited = await rest(alice_client, "patch", url, {"content": "hello there"})
        assert edited.status_code == 200
        updated = await receive_until(bob_socket, "message:updated")
        assert updated["message"]["id"] == message_id
        assert updated["message"]["content"] == "hello there"
        assert updated["message"]["editedAt"] is not None

        deleted = await rest(alice_client, "delete", url)
        assert deleted.status_code == 200
        tombstone = await receive_until(bob_socket, "message:deleted")
        assert tombstone["message"]["id"] == message_id
        assert tombstone["message"]["content"] == ""
        assert tombstone["message"]["deletedAt"] is not None
        assert tombstone["message"]["isDeleted"] is True

        assert await bob_socket.receive_nothing()
        await alice_socket.disconnect()
        await bob_socket.disconnect()


class TestReconnect:
    async def test_rejoin_recovery(
        self, ws_app, alice, bob, conversation, alice_client, bob_client
    ):
        """
        Room membership does not survive a reconnect. Messages sent while
        disconnected are fetched over REST; after rejoining, pushes resume.

        Why it matters: Without an explicit rejoin the client silently
        stops receiving messages after every network blip.
        """
        bob_socket = await open_socket(ws_app, bob)
        await receive_until(bob_socket, "user:online")
        await join(bob_socket, conversation.id)
        await bob_socket.disconnect()

        for i in range(3):
            response = await rest(
                alice_client, "post", messages_url(conversation.id), {"content": f"missed {i}"}
            )
            assert response.status_code == 201

        bob_socket = await open_socket(ws_app, bob)
        await receive_until(bob_socket, "user:online")

        # Not yet rejoined: nothing is pushed
        await rest(alice_client, "post", messages_url(conversation.id), {"content": "lost"})
        assert await bob_socket.receive_nothing()

        history = await rest(bob_client, "get", messages_url(conversation.id))
        assert [m["content"] for m in history.data["results"]] == [
            "missed 0",
            "missed 1",
            "missed 2",
            "lost",
        ]

        await join(bob_socket, conversation.id)
        await rest(alice_client, "post", messages_url(conversation.id), {"content": "fourth"})

        event = await receive_until(bob_socket, "message:new")
        assert event["message"]["content"] == "fourth"
        await bob_socket.disconnect()
