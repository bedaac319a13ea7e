"""
Tests for JWTAuthMiddleware.

The middleware resolves scope["user"] from the handshake token. Every
failure leaves an AnonymousUser; rejecting is left to the consumer.
"""

from datetime import timedelta

import pytest
from rest_framework_simplejwt.tokens import AccessToken

from chat.middleware import JWTAuthMiddleware
from chat.tests.conftest import access_token_for


class ScopeRecorder:
    """Inner ASGI app that remembers the scope it was called with."""

    def __init__(self):
        self.scope = None

    async def __call__(self, scope, receive, send):
        self.scope = scope


async def resolve_user(scope):
    inner = ScopeRecorder()
    await JWTAuthMiddleware(inner)(scope, None, None)
    return inner.scope["user"]


def websocket_scope(query_string=b"", subprotocols=None):
    return {
        "type": "websocket",
        "path": "/ws/chat/",
        "query_string": query_string,
        "headers": [],
        "subprotocols": subprotocols or [],
    }


@pytest.mark.asyncio
@pytest.mark.django_db(transaction=True)
class TestJWTAuthMiddleware:
    async def test_query_string_token(self, alice):
        token = access_token_for(alice)

        user = await resolve_user(websocket_scope(f"token={token}".encode()))

        assert user.is_authenticated
        assert user.pk == alice.pk

    @pytest.mark.parametrize("protocol", ["jwt", "access_token"])
    async def test_subprotocol_token(self, alice, protocol):
        token = access_token_for(alice)

        user = await resolve_user(websocket_scope(subprotocols=[protocol, token]))

        assert user.pk == alice.pk

    async def test_missing_token_is_anonymous(self):
        user = await resolve_user(websocket_scope())

        assert user.is_authenticated is False

    async def test_garbage_token_is_anonymous(self):
        user = await resolve_user(websocket_scope(b"token=not-a-jwt"))

        assert user.is_authenticated is False

    async def test_expired_token_is_anonymous(self, alice):
        token = AccessToken.for_user(alice)
        token.set_exp(lifetime=-timedelta(minutes=1))

        user = await resolve_user(websocket_scope(f"token={token}".encode()))

        assert user.is_authenticated is False

    async def test_token_for_deleted_user_is_anonymous(self, alice):
        token = access_token_for(alice)
        await alice.adelete()

        user = await resolve_user(websocket_scope(f"token={token}".encode()))

        assert user.is_authenticated is False

    async def test_token_for_inactive_user_is_anonymous(self, alice):
        token = access_token_for(alice)
        alice.is_active = False
        await alice.asave()

        user = await resolve_user(websocket_scope(f"token={token}".encode()))

        assert user.is_authenticated is False

    async def test_unusable_identity_claim_is_anonymous(self, alice):
        """
        Why it matters: A signed token whose subject is not a positive
        integer must not resolve to any user.
        """
        token = AccessToken.for_user(alice)
        token["user_id"] = "0"

        user = await resolve_user(websocket_scope(f"token={token}".encode()))

        assert user.is_authenticated is False

    async def test_scope_is_copied(self, alice):
        scope = websocket_scope()

        await resolve_user(scope)

        assert "user" not in scope
