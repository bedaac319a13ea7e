"""
Chat application configuration.

This app provides realtime direct messaging:
- Direct (1:1) conversations, unique per user pair
- Message send, edit and soft deletion
- Websocket presence, rooms and message fan-out
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
