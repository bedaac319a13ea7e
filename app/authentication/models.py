"""
Authentication models.

- User: Email-based user. Its numeric primary key is the identity that the
  realtime layer, conversations and messages are keyed on.
- PresenceState: Enumerated availability stored on the user.

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: PresenceService (presence persistence)

Presence:
    presence_state and last_seen are written by the realtime consumer on
    connect (available) and on the last disconnect (offline, stamped).
    Users may also pick busy/away/invisible/visible_to_all explicitly through
    the profile endpoint; the next connect resets the state to available.
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models
from django.db.models.functions import Lower

from authentication.managers import UserManager


class PresenceState(models.TextChoices):
    AVAILABLE = "available", "Available"
    BUSY = "busy", "Busy"
    AWAY = "away", "Away"
    OFFLINE = "offline", "Offline"
    INVISIBLE = "invisible", "Invisible"
    VISIBLE_TO_ALL = "visible_to_all", "Visible to all"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the login identifier.

    Fields:
        email: Login identifier, unique
        username: Public handle shown to other users
        display_name: Optional human-readable name
        avatar_url: Optional avatar location (file storage is external)
        mood: Optional mood label shown to other users
        presence_state: Current PresenceState
        last_seen: When the user was last connected (set on disconnect)
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified
    """

    email = models.EmailField(
        unique=True,
        max_length=254,
        help_text="User's email address (login identifier)",
    )
    username = models.CharField(
        max_length=30,
        help_text="Public handle (case-insensitively unique)",
    )
    display_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Name shown in conversation lists and message bubbles",
    )
    avatar_url = models.URLField(
        max_length=500,
        blank=True,
        help_text="Avatar image URL",
    )
    mood = models.CharField(
        max_length=50,
        blank=True,
        help_text="Free-form mood label, filterable in user search",
    )

    presence_state = models.CharField(
        max_length=20,
        choices=PresenceState.choices,
        default=PresenceState.OFFLINE,
        help_text="Current presence state",
    )
    last_seen = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the last realtime connection of this user closed",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]
        constraints = [
            models.UniqueConstraint(
                Lower("username"),
                name="unique_username_case_insensitive",
            ),
        ]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.display_name or self.username

    def get_short_name(self):
        return self.username
