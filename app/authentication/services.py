"""
Authentication services.

PresenceService persists presence transitions. UserSearchService backs the
user directory that clients use to find someone to talk to. It does not decide them:
the realtime consumer counts live connections per user and calls
mark_available / mark_offline only when a transition actually happens
(first connection opened, last connection closed).

Both writes are single UPDATE statements keyed by user id, so they never
read-modify-write a stale row. Ordering between two writes for the same
user is enforced by the caller.

Usage:
    from authentication.services import PresenceService

    PresenceService.mark_available(user_id)
    result = PresenceService.mark_offline(user_id)
    last_seen = result.data
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from django.db import DatabaseError
from django.db.models import Q
from django.utils import timezone

from authentication.models import PresenceState, User
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from django.db.models import QuerySet

USER_SEARCH_LIMIT = 50


class PresenceService(BaseService):
    """Persistence of per-user presence state and last-seen timestamps."""

    @classmethod
    def mark_available(cls, user_id: int) -> ServiceResult[datetime]:
        """
        Record that the user has a live connection.

        last_seen is refreshed as well, so clients that show "last seen"
        for available users get the connect time.
        """
        now = timezone.now()
        return cls._write(user_id, PresenceState.AVAILABLE, now)

    @classmethod
    def mark_offline(cls, user_id: int) -> ServiceResult[datetime]:
        """Record that the user's last live connection closed."""
        now = timezone.now()
        return cls._write(user_id, PresenceState.OFFLINE, now)

    @classmethod
    def set_state(cls, user: User, state: str) -> ServiceResult[User]:
        """
        Explicitly set a presence state chosen by the user.

        Args:
            user: The user changing their own state
            state: One of PresenceState values
        """
        if state not in PresenceState.values:
            return ServiceResult.failure(
                f"Unknown presence state: {state}",
                error_code="INVALID_PRESENCE_STATE",
            )

        user.presence_state = state
        user.save(update_fields=["presence_state", "updated_at"])
        cls.get_logger().info(f"User {user.id} set presence to {state}")
        return ServiceResult.success(user)

    @classmethod
    def _write(
        cls, user_id: int, state: str, timestamp: datetime
    ) -> ServiceResult[datetime]:
        try:
            updated = User.objects.filter(pk=user_id).update(
                presence_state=state,
                last_seen=timestamp,
                updated_at=timestamp,
            )
        except DatabaseError as e:
            return cls.handle_exception(
                e,
                f"presence write {state} for user {user_id}",
                error_code="PERSISTENCE_FAILED",
                public_message="Presence could not be saved",
            )

        if not updated:
            return ServiceResult.failure(
                f"User {user_id} not found", error_code="USER_NOT_FOUND"
            )

        cls.get_logger().debug(f"Presence for user {user_id} -> {state}")
        return ServiceResult.success(timestamp)


class UserSearchService(BaseService):
    """Lookup of other users by handle, name, email, visibility and mood."""

    @classmethod
    def search(
        cls,
        user: User,
        query: str = "",
        visible_only: bool = False,
        mood: str = "",
    ) -> QuerySet[User]:
        """
        Search active users other than the caller.

        Args:
            user: The user searching; never part of the results
            query: Case-insensitive substring of username, display name or email
            visible_only: Only users whose presence is visible_to_all
            mood: Exact mood label

        Returns:
            At most USER_SEARCH_LIMIT users ordered by display name
        """
        users = User.objects.filter(is_active=True).exclude(pk=user.pk)

        query = query.strip()
        if query:
            users = users.filter(
                Q(username__icontains=query)
                | Q(display_name__icontains=query)
                | Q(email__icontains=query)
            )
        if visible_only:
            users = users.filter(presence_state=PresenceState.VISIBLE_TO_ALL)
        mood = mood.strip()
        if mood:
            users = users.filter(mood=mood)

        return users.order_by("display_name", "username")[:USER_SEARCH_LIMIT]
