"""
WebSocket authentication middleware.

Provides JWT authentication for WebSocket connections. The resolved user
is attached to scope["user"]; the consumer treats that as the only source
of the connection's identity and ignores any user id a client puts in an
event payload.

Related files:
    - routing.py: WebSocket URL patterns
    - consumers.py: WebSocket handlers
    - config/asgi.py: ASGI configuration

Token Passing Methods:
    1. Query string: ws://host/ws/chat/?token=<jwt_token>
    2. Subprotocol: Sec-WebSocket-Protocol: jwt, <jwt_token>
       (or access_token, <jwt_token>)

Usage in config/asgi.py:
    from chat.middleware import JWTAuthMiddleware

    application = ProtocolTypeRouter({
        "websocket": JWTAuthMiddleware(
            URLRouter(websocket_urlpatterns)
        ),
    })
"""

from __future__ import annotations

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import AccessToken

from chat.registry import validate_identity

logger = logging.getLogger(__name__)

# First entry of the subprotocol pair that carries a token
TOKEN_SUBPROTOCOLS = ("jwt", "access_token")


class JWTAuthMiddleware(BaseMiddleware):
    """
    JWT authentication middleware for WebSocket connections.

    Extracts the access token from the query string or subprotocol,
    validates it, and attaches the user to the scope. Any failure leaves
    an AnonymousUser in place; rejecting the handshake is the consumer's job.

    Token sources (in order of precedence):
        1. Query string: ?token=<jwt_token>
        2. Subprotocol: Sec-WebSocket-Protocol: jwt, <jwt_token>
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        token = self._get_token_from_query(scope) or self._get_token_from_subprotocol(scope)

        if token:
            scope["user"] = await self._get_user_from_token(token)
        else:
            scope["user"] = AnonymousUser()

        return await super().__call__(scope, receive, send)

    @staticmethod
    def _get_token_from_query(scope) -> str | None:
        query_string = scope.get("query_string", b"").decode()
        token_list = parse_qs(query_string).get("token", [])
        return token_list[0] if token_list else None

    @staticmethod
    def _get_token_from_subprotocol(scope) -> str | None:
        """Expects: Sec-WebSocket-Protocol: jwt, <token>"""
        subprotocols = scope.get("subprotocols", [])
        if len(subprotocols) >= 2 and subprotocols[0] in TOKEN_SUBPROTOCOLS:
            return subprotocols[1]
        return None

    @database_sync_to_async
    def _get_user_from_token(self, token: str):
        """
        Validate the access token and load its user.

        Returns:
            User instance if valid and active, AnonymousUser otherwise
        """
        User = get_user_model()

        try:
            access_token = AccessToken(token)
        except TokenError as e:
            logger.warning(f"Invalid JWT token on websocket handshake: {e}")
            return AnonymousUser()

        raw_id = access_token.get(jwt_settings.USER_ID_CLAIM)
        # simplejwt stores the id as a string by default
        if isinstance(raw_id, str) and raw_id.isdigit():
            raw_id = int(raw_id)
        user_id = validate_identity(raw_id)
        if user_id is None:
            logger.warning(f"Unusable identity claim on websocket handshake: {raw_id!r}")
            return AnonymousUser()

        user = User.objects.filter(pk=user_id).first()
        if user is None:
            logger.warning(f"User {user_id} from token not found")
            return AnonymousUser()
        if not user.is_active:
            logger.warning(f"Inactive user attempted WebSocket connection: {user_id}")
            return AnonymousUser()

        return user
