"""
Persist-then-broadcast for message mutations.

MessageFanout is the single place where a message send, edit or delete is
both written to the database and announced on the conversation's room.
Both transports use it: REST views call the sync methods, the websocket
consumer calls asend_message (sockets only send). Either way each
accepted mutation produces exactly one write and exactly one room
broadcast, so a client connected over the socket sees a REST-originated
message once and only once.

Failed writes (validation, authorization or PERSISTENCE_FAILED) are never
broadcast.

Usage:
    fanout = MessageFanout()                 # default channel layer

    # Sync (views)
    result = fanout.send_message(conversation_id, request.user.id, "hi")

    # Async (consumer)
    result = await fanout.asend_message(conversation_id, user_id, "hi")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from asgiref.sync import async_to_sync
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer

from chat.constants import room_group_name
from chat.events import EventType, message_event
from chat.services import MessageService

if TYPE_CHECKING:
    from channels.layers import BaseChannelLayer

    from chat.models import Message
    from core.services import ServiceResult

logger = logging.getLogger(__name__)

# Channels handler name on RealtimeConsumer (chat_event)
CHAT_EVENT = "chat.event"


def envelope(payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap an outbound event for group_send."""
    return {"type": CHAT_EVENT, "event": payload}


class MessageFanout:
    """
    Message mutations with room broadcast.

    Args:
        channel_layer: Layer to broadcast on. Defaults to the configured
            default layer, resolved lazily so settings overrides in tests
            take effect.
    """

    def __init__(self, channel_layer: BaseChannelLayer | None = None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self) -> BaseChannelLayer:
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    # -------------------------------------------------------------------------
    # Sync entry points
    # -------------------------------------------------------------------------

    def send_message(
        self,
        conversation_id: int,
        sender_id: int,
        content: str,
        reply_to_id: int | None = None,
    ) -> ServiceResult[Message]:
        result = MessageService.send_message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            reply_to_id=reply_to_id,
        )
        self._broadcast_sync(result, EventType.MESSAGE_NEW)
        return result

    def edit_message(
        self,
        conversation_id: int,
        message_id: int,
        user_id: int,
        new_content: str,
    ) -> ServiceResult[Message]:
        result = MessageService.edit_message(
            conversation_id=conversation_id,
            message_id=message_id,
            user_id=user_id,
            new_content=new_content,
        )
        self._broadcast_sync(result, EventType.MESSAGE_UPDATED)
        return result

    def delete_message(
        self,
        conversation_id: int,
        message_id: int,
        user_id: int,
    ) -> ServiceResult[Message]:
        result = MessageService.delete_message(
            conversation_id=conversation_id,
            message_id=message_id,
            user_id=user_id,
        )
        self._broadcast_sync(result, EventType.MESSAGE_DELETED)
        return result

    # -------------------------------------------------------------------------
    # Async entry point
    # -------------------------------------------------------------------------

    async def asend_message(
        self,
        conversation_id: int,
        sender_id: int,
        content: str,
        reply_to_id: int | None = None,
    ) -> ServiceResult[Message]:
        result, payload = await database_sync_to_async(self._persist)(
            MessageService.send_message,
            EventType.MESSAGE_NEW,
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            reply_to_id=reply_to_id,
        )
        await self._broadcast(result, payload)
        return result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _persist(service_call, event_type: str, **kwargs):
        """
        Run the service call and build the payload in the same thread.

        The payload serializer reads message.sender, which may hit the
        database, so it must not run on the event loop.
        """
        result = service_call(**kwargs)
        payload = message_event(event_type, result.data) if result.success else None
        return result, payload

    async def _broadcast(self, result: ServiceResult, payload: dict | None) -> None:
        if payload is None:
            logger.debug(f"Not broadcasting failed mutation: {result.error_code}")
            return
        group = room_group_name(payload["conversationId"])
        await self.channel_layer.group_send(group, envelope(payload))
        logger.debug(f"Broadcast {payload['type']} to {group}")

    def _broadcast_sync(self, result: ServiceResult, event_type: str) -> None:
        if not result.success:
            logger.debug(f"Not broadcasting failed mutation: {result.error_code}")
            return
        payload = message_event(event_type, result.data)
        group = room_group_name(payload["conversationId"])
        async_to_sync(self.channel_layer.group_send)(group, envelope(payload))
        logger.debug(f"Broadcast {event_type} to {group}")
