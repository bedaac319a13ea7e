"""
In-process registry of live websocket connections.

ConnectionRegistry maps each live connection (a Channels channel_name) to
the user id that owns it and to the set of conversation rooms it joined,
and keeps a live-connection count per user. It is the part of presence
that must be decided in order: the consumer adjusts it synchronously at the
top of connect/disconnect, before its first await, so two handlers for the
same user can never both believe they are the first or the last connection.

The registry is an explicit object owned by the ASGI application
(see config.asgi.build_application), not module-level state. Each process
owns its own registry; cross-process room delivery goes through the channel
layer, which is the only shared component.

Room membership here mirrors Channels group membership for the same
connection. It exists so that disconnect can discard every group the
connection joined, and so that membership is dropped unconditionally when a
connection goes away.

Usage:
    registry = ConnectionRegistry()

    transition = registry.register("specific.abc", user_id=1)
    transition.first    # True -> broadcast user:online and persist available

    registry.join("specific.abc", 10)
    registry.rooms_for("specific.abc")   # frozenset({10})

    transition = registry.unregister("specific.abc")
    transition.last     # True -> broadcast user:offline and persist offline
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections import defaultdict
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


def validate_identity(claimed) -> int | None:
    """
    Return the claimed identity as a user id, or None if it is unusable.

    Accepts positive ints only; bools, zero, negatives, strings and None
    are rejected.
    """
    if isinstance(claimed, bool) or not isinstance(claimed, int):
        return None
    if claimed <= 0:
        return None
    return claimed


@dataclass(frozen=True)
class PresenceTransition:
    """Outcome of a register/unregister call."""

    user_id: int
    live_connections: int
    first: bool = False
    last: bool = False
    rooms: frozenset[int] = frozenset()


@dataclass
class _Connection:
    user_id: int
    rooms: set[int] = field(default_factory=set)


class ConnectionRegistry:
    """
    Live connections, their owners and their rooms.

    All mutating methods are synchronous and must be called from the event
    loop thread. None of them awaits, so each call is atomic with respect
    to other connections' handlers.
    """

    def __init__(self) -> None:
        self._connections: dict[str, _Connection] = {}
        self._live_counts: defaultdict[int, int] = defaultdict(int)
        # Held only while a presence write is in flight
        self._presence_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def register(self, channel_name: str, user_id: int) -> PresenceTransition:
        """
        Record a new live connection for user_id.

        Registering an already-registered channel_name is a no-op that
        reports the current count.
        """
        if channel_name in self._connections:
            existing = self._connections[channel_name]
            return PresenceTransition(
                user_id=existing.user_id,
                live_connections=self._live_counts[existing.user_id],
            )

        self._connections[channel_name] = _Connection(user_id=user_id)
        self._live_counts[user_id] += 1
        count = self._live_counts[user_id]
        logger.debug(f"Registered {channel_name} for user {user_id} ({count} live)")
        return PresenceTransition(user_id=user_id, live_connections=count, first=count == 1)

    def unregister(self, channel_name: str) -> PresenceTransition | None:
        """
        Drop a connection and all of its rooms.

        The returned transition carries the rooms the connection had joined
        so the caller can leave the matching channel layer groups.

        Returns None for a channel_name that was never registered (for
        example a handshake rejected before registration).
        """
        connection = self._connections.pop(channel_name, None)
        if connection is None:
            return None

        user_id = connection.user_id
        self._live_counts[user_id] -= 1
        count = self._live_counts[user_id]
        if count <= 0:
            del self._live_counts[user_id]
            count = 0
        logger.debug(f"Unregistered {channel_name} for user {user_id} ({count} live)")
        return PresenceTransition(
            user_id=user_id,
            live_connections=count,
            last=count == 0,
            rooms=frozenset(connection.rooms),
        )

    def join(self, channel_name: str, conversation_id: int) -> bool:
        """
        Add a room to the connection. Idempotent.

        Returns:
            True if the room was newly added, False if already joined or the
            connection is unknown
        """
        connection = self._connections.get(channel_name)
        if connection is None or conversation_id in connection.rooms:
            return False
        connection.rooms.add(conversation_id)
        return True

    def leave(self, channel_name: str, conversation_id: int) -> bool:
        """Remove a room from the connection. Idempotent."""
        connection = self._connections.get(channel_name)
        if connection is None or conversation_id not in connection.rooms:
            return False
        connection.rooms.discard(conversation_id)
        return True

    def rooms_for(self, channel_name: str) -> frozenset[int]:
        connection = self._connections.get(channel_name)
        return frozenset(connection.rooms) if connection else frozenset()

    def live_connections(self, user_id: int) -> int:
        return self._live_counts.get(user_id, 0)

    def presence_lock(self, user_id: int) -> asyncio.Lock:
        """
        Lock serializing presence writes for one user.

        Acquire it right after register/unregister with no await in between;
        asyncio.Lock wakes waiters in FIFO order, so persisted presence
        follows the order in which transitions were decided.
        """
        lock = self._presence_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._presence_locks[user_id] = lock
        return lock

    def clear(self) -> None:
        """Forget every connection. Called when the application shuts down."""
        if self._connections:
            logger.info(f"Clearing registry with {len(self._connections)} live connections")
        self._connections.clear()
        self._live_counts.clear()

    def __len__(self) -> int:
        return len(self._connections)
