"""
Tests for PresenceService and UserSearchService.

PresenceService only persists transitions; deciding when a transition
happens is the realtime consumer's job (see chat/tests/test_consumers.py).
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError

from authentication.models import PresenceState
from authentication.services import USER_SEARCH_LIMIT, PresenceService, UserSearchService
from authentication.tests.factories import UserFactory


@pytest.mark.django_db
class TestPresenceServiceTransitions:
    """Tests for mark_available() and mark_offline()."""

    def test_mark_available_sets_state_and_last_seen(self):
        """
        Connecting marks the user available.

        Why it matters: Conversation lists show presence from the database.
        """
        user = UserFactory()

        result = PresenceService.mark_available(user.id)

        user.refresh_from_db()
        assert result.success is True
        assert user.presence_state == PresenceState.AVAILABLE
        assert user.last_seen == result.data

    def test_mark_offline_stamps_last_seen(self):
        """
        The last disconnect records offline and when it happened.

        Why it matters: "last seen" is derived from this timestamp.
        """
        user = UserFactory(presence_state=PresenceState.AVAILABLE)

        result = PresenceService.mark_offline(user.id)

        user.refresh_from_db()
        assert result.success is True
        assert user.presence_state == PresenceState.OFFLINE
        assert user.last_seen == result.data

    def test_mark_offline_after_available_moves_last_seen_forward(self):
        user = UserFactory()

        online = PresenceService.mark_available(user.id)
        offline = PresenceService.mark_offline(user.id)

        assert offline.data >= online.data

    def test_unknown_user_fails(self):
        """A write for a user that does not exist reports USER_NOT_FOUND."""
        result = PresenceService.mark_available(987654)

        assert result.success is False
        assert result.error_code == "USER_NOT_FOUND"

    def test_database_error_returns_persistence_failed(self):
        """
        Store failures become a failed result, not an exception.

        Why it matters: A presence write failing must not crash the socket
        handler that triggered it.
        """
        user = UserFactory()

        with patch(
            "authentication.services.User.objects.filter",
            side_effect=DatabaseError("connection lost"),
        ):
            result = PresenceService.mark_offline(user.id)

        assert result.success is False
        assert result.error_code == "PERSISTENCE_FAILED"
        assert result.error == "Presence could not be saved"


@pytest.mark.django_db
class TestPresenceServiceSetState:
    """Tests for set_state()."""

    def test_sets_explicit_state(self):
        user = UserFactory()

        result = PresenceService.set_state(user, PresenceState.BUSY)

        user.refresh_from_db()
        assert result.success is True
        assert user.presence_state == PresenceState.BUSY

    def test_rejects_unknown_state(self):
        user = UserFactory()

        result = PresenceService.set_state(user, "sleeping")

        assert result.success is False
        assert result.error_code == "INVALID_PRESENCE_STATE"


@pytest.mark.django_db
class TestUserSearchService:
    """Tests for UserSearchService.search()."""

    def test_matches_handle_name_or_email_case_insensitively(self, user):
        by_handle = UserFactory(username="robert", display_name="R")
        by_name = UserFactory(username="x1", display_name="Bobby Tables")
        by_email = UserFactory(username="x2", display_name="Z", email="bob@example.org")
        UserFactory(username="alice", display_name="Alice")

        found = UserSearchService.search(user, query=" BOB ")

        assert set(found) == {by_name, by_email}
        assert by_handle not in found

    def test_excludes_caller_and_inactive_users(self, user):
        UserFactory(username="gone", is_active=False)

        found = UserSearchService.search(user)

        assert user not in found
        assert list(found) == []

    def test_visible_only_and_mood_filters(self, user):
        visible_happy = UserFactory(
            presence_state=PresenceState.VISIBLE_TO_ALL, mood="happy"
        )
        UserFactory(presence_state=PresenceState.VISIBLE_TO_ALL, mood="tired")
        UserFactory(presence_state=PresenceState.AVAILABLE, mood="happy")

        found = UserSearchService.search(user, visible_only=True, mood="happy")

        assert list(found) == [visible_happy]

    def test_ordered_by_display_name_and_limited(self, user):
        for i in range(USER_SEARCH_LIMIT + 5):
            UserFactory(display_name=f"Member {i:03d}")

        found = list(UserSearchService.search(user, query="member"))

        assert len(found) == USER_SEARCH_LIMIT
        assert [u.display_name for u in found] == sorted(u.display_name for u in found)
