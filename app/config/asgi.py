"""
ASGI config for the Django application.

This file exposes the ASGI callable as a module-level variable named
`application`, built by build_application().

This configuration supports:
- HTTP requests via Django
- WebSocket connections via Django Channels (ws/chat/)
- ASGI lifespan events, used to tear down the connection registry

The ConnectionRegistry is created here, once per process, and handed to the
websocket consumer. Tests call build_application() to get an application
with a fresh registry of their own.

Serve with:
    uvicorn config.asgi:application

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import logging
import os

from django.core.asgi import get_asgi_application

# Set the default Django settings module for the ASGI application
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Initialize Django ASGI application early to ensure settings are loaded
# before importing any models or other Django components
django_asgi_app = get_asgi_application()

# Import Channels components after Django is initialized
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.registry import ConnectionRegistry  # noqa: E402
from chat.routing import build_websocket_urlpatterns  # noqa: E402

logger = logging.getLogger("chat")


def build_lifespan_app(registry):
    """Minimal lifespan handler: clear the registry on shutdown."""

    async def lifespan(scope, receive, send):
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                logger.info("Realtime registry started")
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                registry.clear()
                await send({"type": "lifespan.shutdown.complete"})
                return

    return lifespan


def build_application(registry=None, fanout=None, check_origin=True):
    """
    Build the protocol router.

    Args:
        registry: ConnectionRegistry to use (a new one if omitted)
        fanout: MessageFanout for websocket sends (default layer if omitted)
        check_origin: Wrap websockets in AllowedHostsOriginValidator
    """
    if registry is None:
        registry = ConnectionRegistry()

    # WebSocket connections are routed through:
    # 1. AllowedHostsOriginValidator - ensures origin matches ALLOWED_HOSTS
    # 2. JWTAuthMiddleware - authenticates user via JWT token
    # 3. URLRouter - routes to RealtimeConsumer
    websocket_app = JWTAuthMiddleware(
        URLRouter(build_websocket_urlpatterns(registry, fanout))
    )
    if check_origin:
        websocket_app = AllowedHostsOriginValidator(websocket_app)

    router = ProtocolTypeRouter(
        {
            "http": django_asgi_app,
            "websocket": websocket_app,
            "lifespan": build_lifespan_app(registry),
        }
    )
    router.registry = registry
    return router


application = build_application()
