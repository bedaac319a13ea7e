"""
Delivery bridge: turns an incoming message into user-facing signals.

For every message:new the bridge applies these rules, first match wins:

    1. Sent by the local user          -> nothing
    2. Conversation on screen, visible -> clear its unread count, no signal
    3. Otherwise                       -> count it as unread, play a tone
                                          (audio unlocked and sound on) and
                                          raise one OS notification (permission
                                          granted and client not visible)

After any state change, including friend request count and visibility
changes, the badge total (unread + pending friend requests) is pushed to
every badge surface. Rendering the same total twice is harmless.

Signals are independent: a surface that raises is logged and skipped, and
the remaining signals still fire.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterable
from typing import Any, Protocol

from chatclient.state import StateStore
from chatclient.unread import UnreadCounter

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "New message"
NOTIFICATION_FALLBACK_BODY = "You have a new message"
PREVIEW_LENGTH = 100


class SoundPlayer(Protocol):
    unlocked: bool
    enabled: bool

    def play(self) -> None: ...


class OsNotifier(Protocol):
    def permission_granted(self) -> bool: ...

    def notify(self, title: str, body: str) -> None: ...


class BadgeSurface(Protocol):
    """Title prefix, app icon badge, favicon overlay and so on."""

    def render(self, total: int) -> None: ...


class DeliveryOutcome(enum.Enum):
    OWN_MESSAGE = "own_message"
    SEEN = "seen"
    UNREAD = "unread"


class DeliveryBridge:
    """
    Delivery rules and badge rendering for one signed-in user.

    Args:
        local_user_id: Messages from this user never raise a signal
        unread: Per-conversation unread counts
        store: Active conversation and friend request count
        sound: Tone player, optional
        notifier: OS notification surface, optional
        badges: Surfaces that render the badge total
        visible: Whether the client window is currently visible
    """

    def __init__(
        self,
        local_user_id: int,
        unread: UnreadCounter,
        store: StateStore,
        sound: SoundPlayer | None = None,
        notifier: OsNotifier | None = None,
        badges: Iterable[BadgeSurface] = (),
        visible: bool = True,
    ) -> None:
        self.local_user_id = local_user_id
        self.unread = unread
        self.store = store
        self.sound = sound
        self.notifier = notifier
        self.badges = list(badges)
        self.visible = visible

    @property
    def active_conversation_id(self) -> int | None:
        return self.store.get_active_conversation_id()

    def on_message(self, conversation_id: int, message: dict[str, Any]) -> DeliveryOutcome:
        """Apply the delivery rules to one message:new payload."""
        sender_id = message.get("senderId") or (message.get("sender") or {}).get("id")
        if sender_id == self.local_user_id:
            return DeliveryOutcome.OWN_MESSAGE

        if self.visible and self.active_conversation_id == conversation_id:
            self._attempt("unread reset", self.unread.reset, conversation_id)
            self.render_badges()
            return DeliveryOutcome.SEEN

        self._attempt("unread increment", self.unread.increment, conversation_id)
        self._attempt("sound", self._play_sound)
        if not self.visible:
            self._attempt("notification", self._notify, message)
        self.render_badges()
        return DeliveryOutcome.UNREAD

    def set_active_conversation(self, conversation_id: int | None) -> None:
        """Mark a conversation as on screen; its unread count resets to 0."""
        self.store.set_active_conversation_id(conversation_id)
        if conversation_id is not None:
            self._attempt("unread reset", self.unread.reset, conversation_id)
        self.render_badges()

    def set_visibility(self, visible: bool) -> None:
        """Becoming visible clears the unread count of the open conversation."""
        self.visible = visible
        active = self.active_conversation_id
        if visible and active is not None:
            self._attempt("unread reset", self.unread.reset, active)
        self.render_badges()

    def set_pending_friend_requests(self, count: int) -> None:
        """Record the pending friend request count; a rise plays a tone."""
        previous = self.store.get_friend_request_count()
        if count != previous:
            self.store.set_friend_request_count(count)
            if count > previous:
                self._attempt("sound", self._play_sound)
        self.render_badges()

    def badge_total(self) -> int:
        """Unread messages plus pending friend requests."""
        return self.unread.total() + self.store.get_friend_request_count()

    def render_badges(self) -> None:
        total = self.badge_total()
        for surface in self.badges:
            self._attempt(f"badge {type(surface).__name__}", surface.render, total)

    def _play_sound(self) -> None:
        if self.sound is None or not (self.sound.unlocked and self.sound.enabled):
            return
        self.sound.play()

    def _notify(self, message: dict[str, Any]) -> None:
        if self.notifier is None or not self.notifier.permission_granted():
            return
        content = message.get("content")
        body = content[:PREVIEW_LENGTH] if isinstance(content, str) and content else None
        self.notifier.notify(NOTIFICATION_TITLE, body or NOTIFICATION_FALLBACK_BODY)

    @staticmethod
    def _attempt(name: str, func: Callable[..., Any], *args: Any) -> None:
        try:
            func(*args)
        except Exception:
            logger.warning(f"Delivery signal {name} failed", exc_info=True)
