"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - The single realtime endpoint; rooms are joined per event

Authentication:
    JWT token should be passed as query parameter: ?token=<jwt_access_token>
    or as the "jwt, <token>" subprotocol pair. JWTAuthMiddleware validates
    the token and attaches the user to the consumer's scope.

The patterns are built per application so each ASGI app gets the
ConnectionRegistry it owns.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.urls import path

from chat import consumers

if TYPE_CHECKING:
    from chat.fanout import MessageFanout
    from chat.registry import ConnectionRegistry


def build_websocket_urlpatterns(
    registry: ConnectionRegistry,
    fanout: MessageFanout | None = None,
) -> list:
    return [
        path(
            "ws/chat/",
            consumers.RealtimeConsumer.as_asgi(registry=registry, fanout=fanout),
        ),
    ]
