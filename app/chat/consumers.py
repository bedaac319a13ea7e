"""
WebSocket consumer for realtime chat delivery.

One socket per device carries everything: presence, room membership,
typing indicators and message sends. The client opens ws/chat/ once and
then joins a room per conversation it wants pushes for.

Consumers:
    RealtimeConsumer: Handles a single authenticated connection

Authentication:
    JWTAuthMiddleware attaches the user to scope["user"]. A connection
    without an authenticated user is closed with code 4001 before accept and
    emits no event. Identity is fixed for the life of the connection.

Channel Groups:
    - REALTIME_CONFIG.PRESENCE_GROUP: every connection; carries
      user:online / user:offline
    - conv_<conversation_id>: one per conversation, joined explicitly with
      conversation:join. Membership does not survive a reconnect.

Ordering:
    The per-user live count in ConnectionRegistry is adjusted at the top of
    connect/disconnect before any await, and the user's presence lock is
    taken immediately after. Presence writes and broadcasts for one user
    therefore happen in the order the handlers ran, whichever finishes its
    database call first.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from authentication.services import PresenceService
from chat.constants import REALTIME_CONFIG, ErrorCode, room_group_name
from chat.events import (
    EventType,
    JoinConversation,
    LeaveConversation,
    SendMessage,
    Typing,
    error_event,
    parse_client_event,
    presence_event,
    typing_event,
)
from chat.fanout import MessageFanout, envelope
from chat.middleware import TOKEN_SUBPROTOCOLS
from chat.registry import ConnectionRegistry, validate_identity
from core.exceptions import ValidationError

if TYPE_CHECKING:
    from chat.events import ClientEvent

logger = logging.getLogger(__name__)


class RealtimeConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for one live connection.

    Handles:
        - Handshake authentication and presence (online/offline)
        - conversation:join / conversation:leave
        - typing (fanned out to the room, minus the sender)
        - message:send (persisted and broadcast through MessageFanout)

    Attributes (set via as_asgi):
        registry: ConnectionRegistry shared by every connection in this process
        fanout: MessageFanout used for message:send
    """

    registry: ConnectionRegistry | None = None
    fanout: MessageFanout | None = None

    def __init__(self, *args, registry=None, fanout=None, **kwargs):
        super().__init__(*args, **kwargs)
        if registry is not None:
            self.registry = registry
        if self.registry is None:
            raise RuntimeError("RealtimeConsumer requires a registry; use as_asgi(registry=...)")
        self.fanout = fanout or self.fanout or MessageFanout()
        self.user_id: int | None = None

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def connect(self):
        user = self.scope.get("user")
        user_id = validate_identity(user.pk) if user and user.is_authenticated else None

        if user_id is None:
            logger.warning("Rejected websocket connection without a valid identity")
            await self.close(code=REALTIME_CONFIG.CLOSE_UNAUTHENTICATED)
            return

        # No await between the count change and taking the lock
        transition = self.registry.register(self.channel_name, user_id)
        self.user_id = user_id

        async with self.registry.presence_lock(user_id):
            await self.accept(subprotocol=self._token_subprotocol())
            await self.channel_layer.group_add(
                REALTIME_CONFIG.PRESENCE_GROUP, self.channel_name
            )
            result = await database_sync_to_async(PresenceService.mark_available)(user_id)
            last_seen = result.data if result.success else None
            await self._broadcast_presence(EventType.USER_ONLINE, user_id, last_seen)

        logger.info(
            f"User {user_id} connected ({transition.live_connections} live connections)"
        )

    async def disconnect(self, close_code):
        transition = self.registry.unregister(self.channel_name)
        if transition is None:
            return

        user_id = transition.user_id
        async with self.registry.presence_lock(user_id):
            for conversation_id in transition.rooms:
                await self.channel_layer.group_discard(
                    room_group_name(conversation_id), self.channel_name
                )
            await self.channel_layer.group_discard(
                REALTIME_CONFIG.PRESENCE_GROUP, self.channel_name
            )

            if transition.last:
                result = await database_sync_to_async(PresenceService.mark_offline)(user_id)
                last_seen = result.data if result.success else None
                await self._broadcast_presence(EventType.USER_OFFLINE, user_id, last_seen)

        logger.info(
            f"User {user_id} disconnected with code {close_code} "
            f"({transition.live_connections} live connections)"
        )

    # -------------------------------------------------------------------------
    # Inbound events
    # -------------------------------------------------------------------------

    async def receive(self, text_data=None, bytes_data=None, **kwargs):
        if not text_data:
            await self.send_json(
                error_event(None, "Only JSON text frames are supported", ErrorCode.INVALID_PAYLOAD)
            )
            return
        await super().receive(text_data=text_data, **kwargs)

    @classmethod
    async def decode_json(cls, text_data):
        # Non-JSON text is reported by parse_client_event as INVALID_PAYLOAD
        try:
            return await super().decode_json(text_data)
        except ValueError:
            return None

    async def receive_json(self, content, **kwargs):
        try:
            event = parse_client_event(content)
        except ValidationError as e:
            event_name = content.get("type") if isinstance(content, dict) else None
            await self.send_json(
                error_event(
                    event_name if isinstance(event_name, str) else None,
                    e.message,
                    e.error_code,
                    e.details,
                )
            )
            return

        await self._dispatch(event)

    async def _dispatch(self, event: ClientEvent) -> None:
        match event:
            case JoinConversation(conversation_id=conversation_id):
                await self._join(conversation_id)
            case LeaveConversation(conversation_id=conversation_id):
                await self._leave(conversation_id)
            case Typing(conversation_id=conversation_id):
                await self._typing(conversation_id)
            case SendMessage():
                await self._send_message(event)

    async def _join(self, conversation_id: int) -> None:
        """Join a conversation room. Idempotent, never acknowledged."""
        self.registry.join(self.channel_name, conversation_id)
        # group_add is itself idempotent
        await self.channel_layer.group_add(room_group_name(conversation_id), self.channel_name)
        logger.debug(f"User {self.user_id} joined room {conversation_id}")

    async def _leave(self, conversation_id: int) -> None:
        self.registry.leave(self.channel_name, conversation_id)
        await self.channel_layer.group_discard(
            room_group_name(conversation_id), self.channel_name
        )

    async def _typing(self, conversation_id: int) -> None:
        await self.channel_layer.group_send(
            room_group_name(conversation_id),
            {
                "type": "chat.typing",
                "event": typing_event(conversation_id, self.user_id),
                "sender_id": self.user_id,
            },
        )

    async def _send_message(self, event: SendMessage) -> None:
        """Persist and broadcast; failures are acknowledged to this socket only."""
        result = await self.fanout.asend_message(
            conversation_id=event.conversation_id,
            sender_id=self.user_id,
            content=event.content,
            reply_to_id=event.reply_to_id,
        )
        if not result.success:
            logger.info(
                f"message:send from user {self.user_id} to conversation "
                f"{event.conversation_id} rejected: {result.error_code}"
            )
            await self.send_json(
                error_event(EventType.MESSAGE_SEND, result.error, result.error_code)
            )

    # -------------------------------------------------------------------------
    # Channel layer handlers
    # -------------------------------------------------------------------------

    async def chat_event(self, event: dict[str, Any]):
        """Deliver a room or presence event to the socket as-is."""
        await self.send_json(event["event"])

    async def chat_typing(self, event: dict[str, Any]):
        """Deliver user:typing to everyone in the room except the typist."""
        if event["sender_id"] == self.user_id:
            return
        await self.send_json(event["event"])

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _token_subprotocol(self) -> str | None:
        """Echo the token subprotocol name so browsers accept the handshake."""
        subprotocols = self.scope.get("subprotocols") or []
        if subprotocols and subprotocols[0] in TOKEN_SUBPROTOCOLS:
            return subprotocols[0]
        return None

    async def _broadcast_presence(self, event_type: str, user_id: int, last_seen) -> None:
        await self.channel_layer.group_send(
            REALTIME_CONFIG.PRESENCE_GROUP,
            envelope(presence_event(event_type, user_id, last_seen)),
        )
