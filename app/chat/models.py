"""
Chat system models.

This module defines the persisted side of direct messaging:

Models:
    Conversation: Container for messages between exactly two users
    DirectConversationPair: Enforces one conversation per unordered user pair
    Participant: User participation in a conversation
    Message: Individual message within a conversation

Design Decisions:
    - Conversations are direct (1:1) only; membership is fixed at creation
    - Uniqueness of a pair is a database constraint, not a check-then-insert,
      so two concurrent "start conversation" requests cannot both create one
    - Messages are never hard-deleted while their conversation exists:
      deleting clears content and stamps deleted_at, keeping the id valid
      as a reply target
    - Message.reply_to always points into the same conversation; the
      service layer drops references that do not
    - There is no per-user read state on the server; unread counts are
      derived by clients
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from core.model_mixins import SoftDeleteMixin
from core.models import BaseModel

if TYPE_CHECKING:
    from authentication.models import User


class Conversation(BaseModel):
    """
    A direct conversation between two users.

    Fields:
        last_message_at: Timestamp of most recent message (for sorting)

    Relationships:
        participants: Participant records (exactly two)
        messages: Message records, in insertion order
        direct_pair: DirectConversationPair holding the canonical user pair
    """

    last_message_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp of most recent message (for sorting conversation lists)",
    )

    class Meta:
        db_table = "chat_conversation"
        ordering = [F("last_message_at").desc(nulls_last=True), "-created_at"]

    def __str__(self) -> str:
        return f"Direct({self.pk})"

    def get_active_participant_for_user(self, user: User | int) -> Participant | None:
        """
        Get the active participant record for a user.

        Always queries the database; membership is never cached.

        Args:
            user: User instance or user id
        """
        user_id = user if isinstance(user, int) else user.pk
        return self.participants.filter(user_id=user_id, left_at__isnull=True).first()


class DirectConversationPair(models.Model):
    """
    Enforces uniqueness of direct conversations between two users.

    Stores the pair in canonical order (lower user id first) so that
    regardless of who initiates, there is only one row per pair.

    Constraints:
        - UniqueConstraint(user_lower, user_higher): One conversation per pair
        - CheckConstraint(user_lower_id < user_higher_id): Canonical order
    """

    conversation = models.OneToOneField(
        Conversation,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="direct_pair",
        help_text="The direct conversation this pair represents",
    )

    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with lower ID in this conversation pair",
    )

    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
        help_text="User with higher ID in this conversation pair",
    )

    class Meta:
        db_table = "chat_direct_conversation_pair"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_direct_conversation_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="user_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"DirectPair({self.user_lower_id}, {self.user_higher_id})"

    @staticmethod
    def canonical(user_a_id: int, user_b_id: int) -> tuple[int, int]:
        """Return the pair ordered (lower, higher)."""
        return (user_a_id, user_b_id) if user_a_id < user_b_id else (user_b_id, user_a_id)


class Participant(BaseModel):
    """
    Tracks user participation in a conversation.

    left_at is set when an administrator revokes a user's access. A revoked
    participant fails the participation check on the very next call, which
    is why the check is never cached.

    Fields:
        conversation: The conversation
        user: The participating user
        joined_at: When the user was added
        left_at: When access was revoked (NULL while active)
    """

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="participants",
        help_text="Conversation this participation belongs to",
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_participations",
        help_text="Participating user",
    )

    joined_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user was added to the conversation",
    )

    left_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When access was revoked (null while active)",
    )

    class Meta:
        db_table = "chat_participant"
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["conversation", "user"],
                name="unique_participant_per_conversation",
            ),
        ]
        indexes = [
            # "Conversations for user" lookups
            models.Index(
                fields=["user", "left_at"],
                name="chat_participant_user_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Participant(user={self.user_id}, conversation={self.conversation_id})"

    @property
    def is_active(self) -> bool:
        return self.left_at is None


class Message(SoftDeleteMixin, BaseModel):
    """
    A message within a conversation.

    Soft Delete Behavior:
        soft_delete() clears content and stamps deleted_at/is_deleted. The id,
        sender and created_at are kept so that other messages can still
        reference it through reply_to and clients can render a tombstone.

    Fields:
        conversation: Conversation this message belongs to
        sender: User who sent the message
        content: Message text (empty once deleted)
        reply_to: Message in the same conversation this one replies to
        edited_at: Timestamp of the last edit (NULL if never edited)
    """

    soft_delete_update_fields = ("content",)

    conversation = models.ForeignKey(
        Conversation,
        on_delete=models.CASCADE,
        related_name="messages",
        help_text="Conversation this message belongs to",
    )

    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
        help_text="User who sent this message",
    )

    content = models.TextField(
        blank=True,
        help_text="Message text (cleared when the message is deleted)",
    )

    reply_to = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="replies",
        help_text="Message in the same conversation this one replies to",
    )

    edited_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp when message was last edited",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            # Messages in a conversation (cursor pagination)
            models.Index(
                fields=["conversation", "created_at", "id"],
                name="chat_msg_conv_cursor_idx",
            ),
        ]

    def __str__(self) -> str:
        if self.is_deleted:
            return f"User {self.sender_id}: [deleted]"
        content_preview = (
            self.content[:50] + "..." if len(self.content) > 50 else self.content
        )
        return f"User {self.sender_id}: {content_preview}"

    def on_soft_delete(self) -> None:
        self.content = ""

    @property
    def is_edited(self) -> bool:
        return self.edited_at is not None
