"""
Test configuration and fixtures for chat tests.

This module provides:
- Users (alice, bob, outsider) and a direct conversation between alice and bob
- Access tokens and authenticated API clients
- A websocket application with its own ConnectionRegistry, plus helpers
  to open authenticated WebsocketCommunicators against it

Usage:
    def test_example(conversation, alice_client):
        response = alice_client.get(f"/api/v1/chat/conversations/{conversation.id}/")
        assert response.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.django_db(transaction=True)
    async def test_socket(ws_app, alice):
        communicator = await open_socket(ws_app, alice)
"""

import pytest
from channels.testing import WebsocketCommunicator
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.registry import ConnectionRegistry
from chat.tests.factories import DirectConversationFactory

WS_PATH = "/ws/chat/"


def access_token_for(user) -> str:
    return str(RefreshToken.for_user(user).access_token)


def client_for(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token_for(user)}")
    return client


async def open_socket(application, user, *, token=None, subprotocols=None):
    """Connect a WebsocketCommunicator as `user` and assert the handshake succeeded."""
    if token is None:
        token = access_token_for(user)
    path = WS_PATH if subprotocols else f"{WS_PATH}?token={token}"
    communicator = WebsocketCommunicator(application, path, subprotocols=subprotocols)
    connected, _ = await communicator.connect()
    assert connected, f"websocket handshake for user {user.id} was rejected"
    return communicator


async def receive_until(communicator, event_type, timeout=1):
    """Read events until one of event_type arrives; earlier events are discarded."""
    while True:
        event = await communicator.receive_json_from(timeout=timeout)
        if event["type"] == event_type:
            return event


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    return UserFactory(username="alice")


@pytest.fixture
def bob(db):
    return UserFactory(username="bob")


@pytest.fixture
def outsider(db):
    """A user who is not a participant in `conversation`."""
    return UserFactory(username="outsider")


# =============================================================================
# Conversation Fixtures
# =============================================================================


@pytest.fixture
def conversation(alice, bob):
    """Direct conversation between alice and bob."""
    return DirectConversationFactory(users=(alice, bob))


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def alice_client(alice):
    return client_for(alice)


@pytest.fixture
def bob_client(bob):
    return client_for(bob)


@pytest.fixture
def outsider_client(outsider):
    return client_for(outsider)


# =============================================================================
# Realtime Fixtures
# =============================================================================


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def ws_app(registry):
    """ASGI application with a private registry and no origin check."""
    from config.asgi import build_application

    return build_application(registry=registry, check_origin=False)
