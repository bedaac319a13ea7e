"""
Friend request and friendship models.

Models:
    FriendRequest: A request from one user to another
    Friendship: An accepted friendship, stored once per unordered pair

Design Decisions:
    - At most one PENDING request per (sender, receiver), enforced by a
      partial unique constraint, so re-sending while pending is idempotent
    - Friendship uses the same canonical (lower, higher) ordering as
      chat.DirectConversationPair
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from core.models import BaseModel


class FriendRequestStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    DECLINED = "declined", "Declined"


class FriendRequest(BaseModel):
    """
    A friend request.

    Fields:
        sender: User who sent the request
        receiver: User who can accept or decline it
        status: PENDING until the receiver responds
        responded_at: When the receiver accepted or declined
    """

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_friend_requests",
        help_text="User who sent the request",
    )

    receiver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_friend_requests",
        help_text="User the request was sent to",
    )

    status = models.CharField(
        max_length=20,
        choices=FriendRequestStatus.choices,
        default=FriendRequestStatus.PENDING,
        db_index=True,
    )

    responded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the receiver accepted or declined",
    )

    class Meta:
        db_table = "friends_friend_request"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["sender", "receiver"],
                condition=Q(status="pending"),
                name="unique_pending_friend_request",
            ),
            models.CheckConstraint(
                condition=~Q(sender=F("receiver")),
                name="friend_request_not_self",
            ),
        ]

    def __str__(self) -> str:
        return f"FriendRequest({self.sender_id} -> {self.receiver_id}, {self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == FriendRequestStatus.PENDING


class Friendship(BaseModel):
    """An accepted friendship between two users, stored in canonical order."""

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )

    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )

    class Meta:
        db_table = "friends_friendship"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_friendship_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="friendship_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"Friendship({self.user_lower_id}, {self.user_higher_id})"
