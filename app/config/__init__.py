# =============================================================================
# Django Project Configuration Package
# =============================================================================
# Settings, URL configuration and the ASGI application (HTTP + websockets).
# There is no WSGI entry point: realtime delivery needs an ASGI server.
# =============================================================================
