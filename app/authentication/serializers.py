"""
Serializers for authentication models.

This module provides DRF serializers for:
- User model (read operations, embedded in conversation and message payloads)
- Profile updates (display fields and explicit presence state)
- Registration (create user)

Related files:
    - models.py: User and PresenceState
    - views.py: Views that use these serializers

Security:
    - Password fields are write-only
    - Presence timestamps are read-only (written by the realtime layer)
"""

from rest_framework import serializers

from authentication.models import PresenceState, User


class UserSummarySerializer(serializers.ModelSerializer):
    """
    Public view of another user.

    Embedded in conversation participants and REST message payloads.
    """

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "display_name",
            "avatar_url",
            "mood",
            "presence_state",
            "last_seen",
        ]
        read_only_fields = fields


class UserSerializer(serializers.ModelSerializer):
    """Serializer for the current user (GET /auth/me/)."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "display_name",
            "avatar_url",
            "mood",
            "presence_state",
            "last_seen",
            "date_joined",
        ]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """
    Partial update of the current user's public fields.

    presence_state accepts any PresenceState value. The realtime layer
    still overrides it with available/offline on connect and on the last
    disconnect.
    """

    presence_state = serializers.ChoiceField(
        choices=PresenceState.choices, required=False
    )

    class Meta:
        model = User
        fields = ["username", "display_name", "avatar_url", "mood", "presence_state"]

    def validate_username(self, value):
        """Validate username is unique (case-insensitive)."""
        qs = User.objects.filter(username__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("This username is already taken.")
        return value


class RegisterSerializer(serializers.Serializer):
    """
    Serializer for email/password registration.

    Token issuance is handled by the simplejwt token endpoint afterwards.
    """

    email = serializers.EmailField(required=True)
    username = serializers.RegexField(
        r"^[a-zA-Z0-9_-]{3,30}$",
        help_text="3-30 characters: letters, numbers, underscores, hyphens.",
    )
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Password must be at least 8 characters.",
    )
    display_name = serializers.CharField(
        max_length=150, required=False, allow_blank=True
    )

    def validate_email(self, value):
        """Validate that email is not already in use."""
        email = value.lower().strip()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return email

    def validate_username(self, value):
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("This username is already taken.")
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            email=validated_data["email"],
            password=validated_data["password"],
            username=validated_data["username"],
            display_name=validated_data.get("display_name", ""),
        )


class UserSearchQuerySerializer(serializers.Serializer):
    """Query parameters of GET /auth/users/."""

    q = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=100,
        help_text="Substring of username, display name or email",
    )
    visible_only = serializers.BooleanField(
        required=False,
        default=False,
        help_text="Only users whose presence is visible_to_all",
    )
    mood = serializers.CharField(required=False, allow_blank=True, max_length=50)
