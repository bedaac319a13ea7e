"""
Tests for the User model and UserManager.

Covers:
- create_user / create_superuser behavior
- Case-insensitive username uniqueness
- Presence defaults
"""

import pytest
from django.db import IntegrityError

from authentication.models import PresenceState, User
from authentication.tests.factories import UserFactory


@pytest.mark.django_db
class TestUserManager:
    """Tests for UserManager.create_user() and create_superuser()."""

    def test_create_user_hashes_password(self):
        """
        Passwords are stored hashed, never in plain text.

        Why it matters: A leaked database must not leak passwords.
        """
        user = User.objects.create_user(email="ada@example.com", password="s3cretpass")

        assert user.password != "s3cretpass"
        assert user.check_password("s3cretpass")

    def test_create_user_defaults_username_to_email_local_part(self):
        """
        A missing username falls back to the part before the @.

        Why it matters: Every user needs a handle to show in conversations.
        """
        user = User.objects.create_user(email="grace@example.com", password="pw123456")

        assert user.username == "grace"

    def test_create_user_without_email_raises(self):
        """
        Email is the login identifier and cannot be empty.

        Why it matters: USERNAME_FIELD = "email".
        """
        with pytest.raises(ValueError):
            User.objects.create_user(email="", password="pw123456")

    def test_create_user_without_password_is_unusable(self):
        """
        A user created without password cannot log in with one.

        Why it matters: Accounts created by admins must not have a blank password.
        """
        user = User.objects.create_user(email="nopw@example.com")

        assert user.has_usable_password() is False

    def test_create_superuser_sets_flags(self):
        """Superusers are staff and superuser."""
        admin = User.objects.create_superuser(email="admin@example.com", password="pw123456")

        assert admin.is_staff is True
        assert admin.is_superuser is True

    def test_create_superuser_rejects_is_staff_false(self):
        with pytest.raises(ValueError):
            User.objects.create_superuser(
                email="admin@example.com", password="pw123456", is_staff=False
            )


@pytest.mark.django_db
class TestUserModel:
    """Tests for User fields and constraints."""

    def test_new_user_starts_offline_without_last_seen(self):
        """
        Users are offline until their first realtime connection.

        Why it matters: Presence is only ever set to available by a live socket.
        """
        user = UserFactory()

        assert user.presence_state == PresenceState.OFFLINE
        assert user.last_seen is None

    def test_username_unique_case_insensitive(self):
        """
        "Ada" and "ada" cannot both exist.

        Why it matters: Handles are shown to other users and must not be spoofable.
        """
        UserFactory(username="Ada")

        with pytest.raises(IntegrityError):
            UserFactory(username="ada")

    def test_full_name_prefers_display_name(self):
        user = UserFactory(username="ada", display_name="Ada Lovelace")

        assert user.get_full_name() == "Ada Lovelace"
        assert user.get_short_name() == "ada"

    def test_full_name_falls_back_to_username(self):
        user = UserFactory(username="ada", display_name="")

        assert user.get_full_name() == "ada"

    def test_str_is_email(self):
        user = UserFactory(email="someone@example.com")

        assert str(user) == "someone@example.com"
