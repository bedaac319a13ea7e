"""
Realtime connection to ws/chat/.

RealtimeConnection keeps one websocket open, reconnecting with backoff
when it drops. Every (re)connect calls on_connect before any event is
read, which is where the reconciliation layer rejoins rooms: room
membership does not survive a reconnect and nothing missed while
disconnected is replayed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidStatus

from chatclient.api import ChatApiAuthError
from chatclient.config import ClientConfig

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], Awaitable[None]]
ConnectHandler = Callable[[], Awaitable[None]]


class RealtimeConnection:
    """
    One reconnecting websocket to the realtime endpoint.

    Args:
        config: Websocket URL and access token
        on_event: Awaited with every decoded server event, in arrival order
        on_connect: Awaited after each (re)connect, before the first event
            is read

    Sends made while disconnected are dropped and reported as False;
    callers that must not lose a message fall back to REST.
    """

    def __init__(
        self,
        config: ClientConfig,
        on_event: EventHandler,
        on_connect: ConnectHandler | None = None,
    ) -> None:
        self.config = config
        self.on_event = on_event
        self.on_connect = on_connect
        self._ws: ClientConnection | None = None
        self._closing = False

    @property
    def connected(self) -> bool:
        """True while a socket is open."""
        return self._ws is not None

    async def run(self) -> None:
        """
        Connect and dispatch events until close() is called.

        Raises:
            ChatApiAuthError: the server refused the handshake (bad token)
        """
        try:
            async for ws in connect(self.config.ws_connect_url):
                self._ws = ws
                logger.info("Realtime connection established")
                try:
                    if self.on_connect is not None:
                        await self.on_connect()
                    async for raw in ws:
                        await self._dispatch(raw)
                except ConnectionClosed as exc:
                    logger.info(f"Realtime connection closed: {exc}")
                finally:
                    self._ws = None

                if self._closing:
                    break
        except InvalidStatus as exc:
            raise ChatApiAuthError(
                "Realtime handshake rejected",
                status_code=exc.response.status_code,
            ) from exc

    async def close(self) -> None:
        """Stop reconnecting and close the current socket."""
        self._closing = True
        if self._ws is not None:
            await self._ws.close()

    async def send(self, event: dict[str, Any]) -> bool:
        """Send one event. Returns False when not connected."""
        if self._ws is None:
            logger.debug(f"Dropping {event.get('type')} while disconnected")
            return False
        try:
            await self._ws.send(json.dumps(event))
        except ConnectionClosed:
            logger.debug(f"Connection closed while sending {event.get('type')}")
            return False
        return True

    async def join(self, conversation_id: int) -> bool:
        """Ask for room pushes. Idempotent and never acknowledged."""
        return await self.send({"type": "conversation:join", "conversationId": conversation_id})

    async def leave(self, conversation_id: int) -> bool:
        return await self.send({"type": "conversation:leave", "conversationId": conversation_id})

    async def typing(self, conversation_id: int) -> bool:
        return await self.send({"type": "typing", "conversationId": conversation_id})

    async def send_message(
        self, conversation_id: int, content: str, reply_to_id: int | None = None
    ) -> bool:
        event: dict[str, Any] = {
            "type": "message:send",
            "conversationId": conversation_id,
            "content": content,
        }
        if reply_to_id is not None:
            event["replyToId"] = reply_to_id
        return await self.send(event)

    async def _dispatch(self, raw: str | bytes) -> None:
        try:
            event = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring non-JSON realtime frame")
            return
        if not isinstance(event, dict):
            return
        await self.on_event(event)
