"""
Client reconciliation layer.

Keeps the client's local view consistent with the server while events
arrive over a connection that can drop at any time:

- Incoming message events are merged into per-conversation lists, keyed by
  message id and sorted by createdAt, so a message delivered twice (REST
  snapshot and push, or a push after reconnect) appears once.
- REST snapshots are merged into a loaded list, never swapped in for it.
  A push handled while the snapshot request was in flight stays in the
  list.
- On every (re)connect all rooms are joined again from a fresh REST
  conversation list. If that fetch fails or is empty, the layer joins the
  conversations it knows from local unread state plus the active one.
- While connected, a periodic sweep re-issues the joins, which also picks
  up conversations created after the last connect.
- A friend request poll keeps the badge's friend request count current.

Events missed while disconnected are not replayed. The open conversation
is refreshed from REST on reconnect; other conversations catch up when
they are opened.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Protocol

from chatclient.api import ChatApiError

if TYPE_CHECKING:
    from chatclient.api import ChatApiClient
    from chatclient.config import ClientConfig
    from chatclient.delivery import DeliveryBridge
    from chatclient.state import StateStore
    from chatclient.unread import UnreadCounter

logger = logging.getLogger(__name__)

MESSAGE_NEW = "message:new"
MESSAGE_UPDATED = "message:updated"
MESSAGE_DELETED = "message:deleted"
USER_ONLINE = "user:online"
USER_OFFLINE = "user:offline"
USER_TYPING = "user:typing"
ERROR = "error"

# Per conversation; older ids fall out first
SEEN_IDS_PER_CONVERSATION = 500


def message_order(message: dict[str, Any]) -> tuple[str, int]:
    return (message.get("createdAt") or "", message.get("id") or 0)


def fresher(current: dict[str, Any], candidate: dict[str, Any]) -> dict[str, Any]:
    """
    Pick the more recent of two versions of the same message.

    A tombstone is final, and an edit beats an older edit or the original.
    Ties go to the candidate.
    """
    if candidate.get("isDeleted") != current.get("isDeleted"):
        return candidate if candidate.get("isDeleted") else current
    if (current.get("editedAt") or "") > (candidate.get("editedAt") or ""):
        return current
    return candidate


class RoomJoiner(Protocol):
    connected: bool

    async def join(self, conversation_id: int) -> bool: ...


class ReconciliationLayer:
    """
    Local message lists, presence and room membership for one client.

    Args:
        api: REST client used for snapshots, conversation lists and
            friend requests
        bridge: Receives every new message exactly once
        unread: Unread counts, also the fallback source of rooms to rejoin
        store: Active conversation and friend request count
        config: Sweep and poll intervals
        connection: Realtime connection rooms are joined on. May be
            attached later with attach().

    Usage:
        layer = ReconciliationLayer(api, bridge, unread, store, config)
        connection = RealtimeConnection(config, layer.handle_event, layer.on_reconnect)
        layer.attach(connection)
        await layer.start()
    """

    def __init__(
        self,
        api: ChatApiClient,
        bridge: DeliveryBridge,
        unread: UnreadCounter,
        store: StateStore,
        config: ClientConfig,
        connection: RoomJoiner | None = None,
    ) -> None:
        self.api = api
        self.bridge = bridge
        self.unread = unread
        self.store = store
        self.config = config
        self.connection = connection

        # Loaded conversations only; others are fetched when opened
        self.messages: dict[int, list[dict[str, Any]]] = {}
        self.online_user_ids: set[int] = set()
        self.known_conversation_ids: set[int] = set()
        # Recent message:new ids per conversation, for dedupe
        self._seen_ids: dict[int, deque[int]] = {}
        self._tasks: list[asyncio.Task] = []

    def attach(self, connection: RoomJoiner) -> None:
        self.connection = connection

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def handle_event(self, event: dict[str, Any]) -> None:
        """Apply one server event. Unknown or malformed events are logged and dropped."""
        event_type = event.get("type")

        if event_type in (MESSAGE_NEW, MESSAGE_UPDATED, MESSAGE_DELETED):
            self._handle_message_event(event_type, event)
        elif event_type == USER_ONLINE:
            self._set_online(event.get("userId"), True)
        elif event_type == USER_OFFLINE:
            self._set_online(event.get("userId"), False)
        elif event_type == USER_TYPING:
            logger.debug(
                f"User {event.get('userId')} typing in {event.get('conversationId')}"
            )
        elif event_type == ERROR:
            logger.warning(
                f"Server rejected {event.get('event')}: "
                f"{event.get('error')} ({event.get('errorCode')})"
            )
        else:
            logger.debug(f"Ignoring unknown realtime event {event_type!r}")

    def _handle_message_event(self, event_type: str, event: dict[str, Any]) -> None:
        message = event.get("message")
        if not isinstance(message, dict) or not isinstance(message.get("id"), int):
            logger.warning(f"Ignoring {event_type} without a message")
            return
        conversation_id = event.get("conversationId") or message.get("conversationId")
        if not isinstance(conversation_id, int) or conversation_id <= 0:
            logger.warning(f"Ignoring {event_type} without a conversation id")
            return

        self.known_conversation_ids.add(conversation_id)
        is_new = self._merge(conversation_id, message, append=event_type == MESSAGE_NEW)

        # A duplicate message:new was already counted the first time
        if event_type == MESSAGE_NEW and is_new:
            self.bridge.on_message(conversation_id, message)

    def _merge(self, conversation_id: int, message: dict[str, Any], append: bool) -> bool:
        """
        Upsert a message into its conversation.

        Returns True only for a message:new whose id was not seen before.
        Updates and deletes never add a message that is not in the list.
        """
        messages = self.messages.get(conversation_id)
        if messages is not None:
            for index, existing in enumerate(messages):
                if existing.get("id") == message["id"]:
                    messages[index] = fresher(existing, message)
                    return False
            if not append:
                return False
            messages.append(message)
            messages.sort(key=message_order)
        elif not append:
            return False
        return self._remember(conversation_id, message["id"])

    def _remember(self, conversation_id: int, message_id: int) -> bool:
        """Record a message:new id; False when it is already recorded."""
        seen = self._seen_ids.get(conversation_id)
        if seen is None:
            seen = self._seen_ids[conversation_id] = deque(maxlen=SEEN_IDS_PER_CONVERSATION)
        if message_id in seen:
            return False
        seen.append(message_id)
        return True

    def _set_online(self, user_id: Any, online: bool) -> None:
        if not isinstance(user_id, int):
            return
        if online:
            self.online_user_ids.add(user_id)
        else:
            self.online_user_ids.discard(user_id)

    # -------------------------------------------------------------------------
    # Conversations on screen
    # -------------------------------------------------------------------------

    async def open_conversation(self, conversation_id: int) -> list[dict[str, Any]]:
        """Make a conversation active and load its messages from REST."""
        self.bridge.set_active_conversation(conversation_id)
        await self.refresh_conversation(conversation_id)
        return self.messages.get(conversation_id, [])

    def close_conversation(self) -> None:
        """Take the active conversation off screen and drop its list."""
        active = self.store.get_active_conversation_id()
        self.bridge.set_active_conversation(None)
        if active is not None:
            self.messages.pop(active, None)

    async def refresh_conversation(self, conversation_id: int) -> bool:
        """
        Merge a REST snapshot into a conversation's list. Best effort.

        The list exists from the moment the request is sent, so pushes
        handled while it is in flight are merged into it as usual. Snapshot
        entries win over list entries with the same id unless the list
        holds a fresher edit or a tombstone. List entries missing from the
        snapshot are kept.

        Returns:
            False if the snapshot could not be fetched, or the conversation
            was closed before it arrived
        """
        messages = self.messages.setdefault(conversation_id, [])
        try:
            snapshot = await self.api.list_messages(conversation_id)
        except ChatApiError:
            logger.warning(
                f"Could not refresh conversation {conversation_id}", exc_info=True
            )
            if not messages and self.messages.get(conversation_id) is messages:
                del self.messages[conversation_id]
            return False

        if self.messages.get(conversation_id) is not messages:
            logger.debug(f"Conversation {conversation_id} closed during refresh")
            return False

        merged = {message["id"]: message for message in messages}
        for item in snapshot:
            message = self._from_rest(item)
            current = merged.get(message["id"])
            merged[message["id"]] = message if current is None else fresher(current, message)
        messages[:] = sorted(merged.values(), key=message_order)
        return True

    @staticmethod
    def _from_rest(message: dict[str, Any]) -> dict[str, Any]:
        """REST messages are snake_case; keep lists in the realtime shape."""
        return {
            "id": message.get("id"),
            "conversationId": message.get("conversation_id"),
            "senderId": message.get("sender_id"),
            "content": message.get("content", ""),
            "createdAt": message.get("created_at"),
            "editedAt": message.get("edited_at"),
            "deletedAt": message.get("deleted_at"),
            "isDeleted": message.get("is_deleted", False),
            "replyToId": message.get("reply_to_id"),
        }

    # -------------------------------------------------------------------------
    # Room recovery
    # -------------------------------------------------------------------------

    async def rejoin_all(self) -> set[int]:
        """
        Join a room for every conversation of the user.

        Returns:
            The conversation ids a join was issued for
        """
        if self.connection is None:
            return set()

        conversation_ids: set[int] = set()
        try:
            conversations = await self.api.list_conversations()
        except ChatApiError:
            logger.warning("Conversation list unavailable; rejoining from local state")
            conversations = []

        for conversation in conversations:
            conversation_id = conversation.get("id")
            if isinstance(conversation_id, int) and conversation_id > 0:
                conversation_ids.add(conversation_id)

        if not conversation_ids:
            conversation_ids.update(self.unread.counts())
            active = self.store.get_active_conversation_id()
            if active is not None:
                conversation_ids.add(active)
        else:
            self.known_conversation_ids.update(conversation_ids)

        for conversation_id in sorted(conversation_ids):
            await self.connection.join(conversation_id)

        logger.debug(f"Rejoined {len(conversation_ids)} rooms")
        return conversation_ids

    async def on_reconnect(self) -> None:
        """Called by the transport on every (re)connect, before events flow."""
        await self.rejoin_all()
        active = self.store.get_active_conversation_id()
        if active is not None:
            await self.refresh_conversation(active)
        await self.poll_friend_requests()

    async def poll_friend_requests(self) -> None:
        """Refresh the pending friend request count; keeps the old count on failure."""
        try:
            pending = await self.api.list_received_friend_requests()
        except ChatApiError:
            logger.debug("Friend request poll failed", exc_info=True)
            return
        self.bridge.set_pending_friend_requests(len(pending))

    # -------------------------------------------------------------------------
    # Background loops
    # -------------------------------------------------------------------------

    async def run_rejoin_sweep(self) -> None:
        """Re-issue room joins every rejoin_interval while connected."""
        while True:
            await asyncio.sleep(self.config.rejoin_interval)
            if self.connection is None or not self.connection.connected:
                continue
            try:
                await self.rejoin_all()
            except Exception:
                logger.exception("Room rejoin sweep failed; retrying next interval")

    async def run_friend_poll(self) -> None:
        """Poll friend requests every friend_poll_interval."""
        while True:
            await asyncio.sleep(self.config.friend_poll_interval)
            try:
                await self.poll_friend_requests()
            except Exception:
                logger.exception("Friend request poll failed; retrying next interval")

    async def start(self) -> None:
        """Start the rejoin sweep and friend poll. Idempotent."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self.run_rejoin_sweep(), name="chat-rejoin-sweep"),
            asyncio.create_task(self.run_friend_poll(), name="chat-friend-poll"),
        ]

    async def stop(self) -> None:
        """Cancel the background loops and wait for them to finish."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
