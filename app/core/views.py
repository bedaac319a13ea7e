"""
Core views providing infrastructure endpoints.

These are not part of the chat domain but are needed to run it behind a
load balancer or orchestrator.
"""

import logging

from channels.layers import get_channel_layer
from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"
        - channel_layer: "configured" or "missing"

    HTTP Status Codes:
        200: Database reachable and a channel layer is configured
        503: Otherwise

    Cache failures degrade but do not fail the check; the cache only backs
    throttling counters.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
        "channel_layer": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"
        is_healthy = False

    # IGNORE_EXCEPTIONS on the Redis cache turns outages into cache misses
    cache.set("health_check", "ok", timeout=1)
    if cache.get("health_check") == "ok":
        health_status["cache"] = "connected"
    else:
        health_status["cache"] = "disconnected"

    # Without a channel layer no realtime event can be fanned out
    if get_channel_layer() is not None:
        health_status["channel_layer"] = "configured"
    else:
        health_status["channel_layer"] = "missing"
        is_healthy = False

    if not is_healthy:
        health_status["status"] = "unhealthy"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
