"""
Client-side unread counting.

Unread counts are derived on the client from the message events it sees.
They are an approximation: events missed while disconnected are never
counted, and a conversation's count resets to 0 when it becomes active.
Nothing here is reconciled against the server.

The UnreadCounter protocol isolates that policy so that a server-backed
counter could replace LocalUnreadCounter without touching the bridge.
"""

from __future__ import annotations

from typing import Protocol

from chatclient.state import StateStore


class UnreadCounter(Protocol):
    """Per-conversation unread counts. A server-backed counter can replace the local one."""

    def increment(self, conversation_id: int) -> int: ...

    def reset(self, conversation_id: int) -> bool: ...

    def counts(self) -> dict[int, int]: ...

    def total(self) -> int: ...


class LocalUnreadCounter:
    """UnreadCounter backed by a StateStore."""

    def __init__(self, store: StateStore) -> None:
        self.store = store

    def increment(self, conversation_id: int) -> int:
        counts = self.store.get_unread_counts()
        counts[conversation_id] = counts.get(conversation_id, 0) + 1
        self.store.set_unread_counts(counts)
        return counts[conversation_id]

    def reset(self, conversation_id: int) -> bool:
        """Zero one conversation. Returns True if it had unread messages."""
        counts = self.store.get_unread_counts()
        if not counts.get(conversation_id):
            return False
        counts.pop(conversation_id)
        self.store.set_unread_counts(counts)
        return True

    def counts(self) -> dict[int, int]:
        return self.store.get_unread_counts()

    def total(self) -> int:
        return sum(self.store.get_unread_counts().values())
