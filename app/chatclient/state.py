"""
Persisted client state.

Three advisory values survive a restart of the client:

    unreadCounts          {conversation id: count}
    activeConversationId  the conversation currently on screen, or null
    friendRequestCount    pending friend requests last seen

All of them are caches that the client can rebuild, so a missing or
corrupt state file is treated as empty rather than as an error.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

UNREAD_COUNTS = "unreadCounts"
ACTIVE_CONVERSATION_ID = "activeConversationId"
FRIEND_REQUEST_COUNT = "friendRequestCount"


class StateStore(Protocol):
    """Client state that should survive a restart of the client."""

    def get_unread_counts(self) -> dict[int, int]: ...

    def set_unread_counts(self, counts: dict[int, int]) -> None: ...

    def get_active_conversation_id(self) -> int | None: ...

    def set_active_conversation_id(self, conversation_id: int | None) -> None: ...

    def get_friend_request_count(self) -> int: ...

    def set_friend_request_count(self, count: int) -> None: ...


def _clean_counts(raw: Any) -> dict[int, int]:
    if not isinstance(raw, dict):
        return {}
    counts: dict[int, int] = {}
    for key, value in raw.items():
        try:
            conversation_id, count = int(key), int(value)
        except (TypeError, ValueError):
            continue
        if conversation_id > 0 and count > 0:
            counts[conversation_id] = count
    return counts


def _clean_id(raw: Any) -> int | None:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _clean_count(raw: Any) -> int:
    try:
        return max(0, int(raw))
    except (TypeError, ValueError):
        return 0


class MemoryStateStore:
    """State kept in a dict; lost when the process exits."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(initial or {})

    def get_unread_counts(self) -> dict[int, int]:
        return _clean_counts(self._data.get(UNREAD_COUNTS))

    def set_unread_counts(self, counts: dict[int, int]) -> None:
        self._data[UNREAD_COUNTS] = _clean_counts(counts)

    def get_active_conversation_id(self) -> int | None:
        return _clean_id(self._data.get(ACTIVE_CONVERSATION_ID))

    def set_active_conversation_id(self, conversation_id: int | None) -> None:
        self._data[ACTIVE_CONVERSATION_ID] = _clean_id(conversation_id)

    def get_friend_request_count(self) -> int:
        return _clean_count(self._data.get(FRIEND_REQUEST_COUNT))

    def set_friend_request_count(self, count: int) -> None:
        self._data[FRIEND_REQUEST_COUNT] = _clean_count(count)


class JsonFileStateStore(MemoryStateStore):
    """
    State mirrored to a JSON file.

    The file is read once at construction and rewritten atomically (temp
    file + rename) after every change.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> dict[str, Any]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError):
            logger.warning(f"Ignoring unreadable client state at {self.path}", exc_info=True)
            return {}
        return raw if isinstance(raw, dict) else {}

    def _flush(self) -> None:
        payload = {
            UNREAD_COUNTS: {str(k): v for k, v in self.get_unread_counts().items()},
            ACTIVE_CONVERSATION_ID: self.get_active_conversation_id(),
            FRIEND_REQUEST_COUNT: self.get_friend_request_count(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def set_unread_counts(self, counts: dict[int, int]) -> None:
        super().set_unread_counts(counts)
        self._flush()

    def set_active_conversation_id(self, conversation_id: int | None) -> None:
        super().set_active_conversation_id(conversation_id)
        self._flush()

    def set_friend_request_count(self, count: int) -> None:
        super().set_friend_request_count(count)
        self._flush()
