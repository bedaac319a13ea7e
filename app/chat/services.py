"""
Chat system service layer.

This module provides the business logic for the chat system. It is the
persistence side of the realtime core: every rule about who may read or
write a conversation lives here, and both transports (REST views and the
websocket consumer, through chat.fanout) go through it.

Services:
    ConversationService: Direct conversation creation and lookup
    MessageService: Message send, edit, soft delete and listing

Design Principles:
    - Services are stateless (use class methods)
    - Participation is re-checked against the database on every call
    - Expected failures return ServiceResult.failure() with a chat ErrorCode
    - Database failures are logged and returned as PERSISTENCE_FAILED; the
      caller never broadcasts after a failed write and services never retry
    - Services never touch the channel layer; broadcasting is chat.fanout's job

Usage:
    from chat.services import ConversationService, MessageService

    result = ConversationService.get_or_create_direct(user, other_user_id=2)
    if result.success:
        conversation, created = result.data

    result = MessageService.send_message(
        conversation_id=conversation.id,
        sender_id=user.id,
        content="hello",
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError
from django.db.models import F, OuterRef, Subquery
from django.utils import timezone

from core.services import BaseService, ServiceResult

from chat.constants import MESSAGE_CONFIG, ErrorCode
from chat.models import Conversation, DirectConversationPair, Message, Participant

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User

logger = logging.getLogger(__name__)


class ConversationService(BaseService):
    """
    Service for conversation lifecycle operations.

    Methods:
        get_or_create_direct: Idempotent creation per user pair
        list_for_user: User's conversations with last message preview
        get_for_participant: Load a conversation the user participates in
    """

    @classmethod
    def get_or_create_direct(
        cls,
        user: User,
        other_user_id: int,
    ) -> ServiceResult[tuple[Conversation, bool]]:
        """
        Create or retrieve the direct conversation between two users.

        Either side may call this any number of times; the pair is stored in
        canonical order under a unique constraint, so the same conversation
        comes back every time. When two first requests race, the loser of the
        insert catches the IntegrityError and returns the winner's row.

        Args:
            user: Requesting user
            other_user_id: The other participant

        Returns:
            ServiceResult with (conversation, created)

        Error codes:
            SELF_CONVERSATION: other_user_id is the requesting user
            USER_NOT_FOUND: No active user with other_user_id
            PERSISTENCE_FAILED: The store rejected the write
        """
        if other_user_id == user.id:
            return ServiceResult.failure(
                "Cannot start a conversation with yourself",
                error_code=ErrorCode.SELF_CONVERSATION,
            )

        try:
            if not get_user_model().objects.filter(
                pk=other_user_id, is_active=True
            ).exists():
                return ServiceResult.failure(
                    "User not found",
                    error_code=ErrorCode.USER_NOT_FOUND,
                )

            user_lower_id, user_higher_id = DirectConversationPair.canonical(
                user.id, other_user_id
            )

            existing = cls._find_direct(user_lower_id, user_higher_id)
            if existing is not None:
                cls.get_logger().debug(
                    f"Found existing direct conversation {existing.id} "
                    f"between users {user_lower_id} and {user_higher_id}"
                )
                return ServiceResult.success((existing, False))

            try:
                with cls.atomic():
                    conversation = Conversation.objects.create()
                    DirectConversationPair.objects.create(
                        conversation=conversation,
                        user_lower_id=user_lower_id,
                        user_higher_id=user_higher_id,
                    )
                    Participant.objects.bulk_create(
                        [
                            Participant(conversation=conversation, user_id=user_lower_id),
                            Participant(conversation=conversation, user_id=user_higher_id),
                        ]
                    )
            except IntegrityError:
                # Concurrent request created the pair first
                existing = cls._find_direct(user_lower_id, user_higher_id)
                if existing is None:
                    raise
                return ServiceResult.success((existing, False))

        except DatabaseError as e:
            return cls.handle_exception(
                e,
                f"create direct conversation {user.id}<->{other_user_id}",
                error_code=ErrorCode.PERSISTENCE_FAILED,
                public_message="Conversation could not be created",
            )

        cls.get_logger().info(
            f"Created direct conversation {conversation.id} "
            f"between users {user_lower_id} and {user_higher_id}"
        )
        return ServiceResult.success((conversation, True))

    @classmethod
    def list_for_user(cls, user: User) -> list[Conversation]:
        """
        Conversations the user actively participates in, newest activity first.

        Each conversation gets a `last_message` attribute (Message or None)
        for list previews, loaded with one extra query for all rows.
        """
        last_message_ids = Message.objects.filter(
            conversation=OuterRef("pk")
        ).order_by("-created_at", "-id").values("id")[:1]

        conversations = list(
            Conversation.objects.filter(
                participants__user=user,
                participants__left_at__isnull=True,
            )
            .annotate(last_message_id=Subquery(last_message_ids))
            .prefetch_related("participants__user")
            .order_by(F("last_message_at").desc(nulls_last=True), "-created_at")
        )

        ids = [c.last_message_id for c in conversations if c.last_message_id]
        messages = Message.objects.select_related("sender").in_bulk(ids)
        for conversation in conversations:
            conversation.last_message = messages.get(conversation.last_message_id)

        return conversations

    @classmethod
    def get_for_participant(
        cls, conversation_id: int, user_id: int
    ) -> ServiceResult[Conversation]:
        """
        Load a conversation and verify the user is an active participant.

        Error codes:
            CONVERSATION_NOT_FOUND: No such conversation
            NOT_PARTICIPANT: User is not (or no longer) a participant
        """
        conversation = Conversation.objects.filter(pk=conversation_id).first()
        if conversation is None:
            return ServiceResult.failure(
                "Conversation not found",
                error_code=ErrorCode.CONVERSATION_NOT_FOUND,
            )
        if conversation.get_active_participant_for_user(user_id) is None:
            return ServiceResult.failure(
                "You are not a participant in this conversation",
                error_code=ErrorCode.NOT_PARTICIPANT,
            )
        return ServiceResult.success(conversation)

    @staticmethod
    def _find_direct(user_lower_id: int, user_higher_id: int) -> Conversation | None:
        pair = (
            DirectConversationPair.objects.select_related("conversation")
            .filter(user_lower_id=user_lower_id, user_higher_id=user_higher_id)
            .first()
        )
        return pair.conversation if pair else None


class MessageService(BaseService):
    """
    Service for message operations.

    Every method takes the acting user's id as resolved by the transport's
    authenticator. Nothing here trusts a sender id found in a payload.

    Methods:
        send_message: Persist a new message
        edit_message: Replace content of an own, non-deleted message
        delete_message: Soft delete an own message
        list_messages: Messages of a conversation, oldest first
    """

    @classmethod
    def send_message(
        cls,
        conversation_id: int,
        sender_id: int,
        content: str,
        reply_to_id: int | None = None,
    ) -> ServiceResult[Message]:
        """
        Send a text message to a conversation.

        A reply_to_id that does not exist or belongs to another conversation
        is dropped; the message is sent without a reply reference. Deleted
        messages remain valid reply targets.

        Returns:
            ServiceResult with the new Message

        Error codes:
            CONVERSATION_NOT_FOUND, NOT_PARTICIPANT, EMPTY_CONTENT,
            CONTENT_TOO_LONG, PERSISTENCE_FAILED
        """
        try:
            access = ConversationService.get_for_participant(conversation_id, sender_id)
            if not access.success:
                return access
            conversation = access.data

            content_check = cls._clean_content(content)
            if not content_check.success:
                return content_check
            content = content_check.data

            reply_to = None
            if reply_to_id is not None:
                reply_to = Message.objects.filter(
                    pk=reply_to_id, conversation_id=conversation.id
                ).first()
                if reply_to is None:
                    cls.get_logger().info(
                        f"Dropping reply_to {reply_to_id} outside conversation "
                        f"{conversation.id}"
                    )

            with cls.atomic():
                message = Message.objects.create(
                    conversation=conversation,
                    sender_id=sender_id,
                    content=content,
                    reply_to=reply_to,
                )
                Conversation.objects.filter(pk=conversation.id).update(
                    last_message_at=message.created_at,
                    updated_at=timezone.now(),
                )
        except DatabaseError as e:
            return cls.handle_exception(
                e,
                f"send message to conversation {conversation_id}",
                error_code=ErrorCode.PERSISTENCE_FAILED,
                public_message="Message could not be saved",
            )

        cls.get_logger().debug(
            f"User {sender_id} sent message {message.id} "
            f"to conversation {conversation_id}"
        )
        return ServiceResult.success(message)

    @classmethod
    def edit_message(
        cls,
        conversation_id: int,
        message_id: int,
        user_id: int,
        new_content: str,
    ) -> ServiceResult[Message]:
        """
        Edit a message.

        Only the original author can edit, and only while the message is not
        deleted. There is no edit window or edit count limit.

        Error codes:
            CONVERSATION_NOT_FOUND, NOT_PARTICIPANT, MESSAGE_NOT_FOUND,
            NOT_AUTHOR, MESSAGE_DELETED, EMPTY_CONTENT, CONTENT_TOO_LONG,
            PERSISTENCE_FAILED
        """
        try:
            with cls.atomic():
                lookup = cls._own_message_for_update(conversation_id, message_id, user_id)
                if not lookup.success:
                    return lookup
                message = lookup.data

                if message.is_deleted:
                    return ServiceResult.failure(
                        "Cannot edit deleted messages",
                        error_code=ErrorCode.MESSAGE_DELETED,
                    )

                content_check = cls._clean_content(new_content)
                if not content_check.success:
                    return content_check

                message.content = content_check.data
                message.edited_at = timezone.now()
                message.save(update_fields=["content", "edited_at", "updated_at"])
        except DatabaseError as e:
            return cls.handle_exception(
                e,
                f"edit message {message_id}",
                error_code=ErrorCode.PERSISTENCE_FAILED,
                public_message="Message could not be saved",
            )

        cls.get_logger().info(f"User {user_id} edited message {message_id}")
        return ServiceResult.success(message)

    @classmethod
    def delete_message(
        cls,
        conversation_id: int,
        message_id: int,
        user_id: int,
    ) -> ServiceResult[Message]:
        """
        Soft delete a message.

        Content is cleared and deleted_at stamped; id, sender and timestamps
        are kept so replies keep resolving.

        Error codes:
            CONVERSATION_NOT_FOUND, NOT_PARTICIPANT, MESSAGE_NOT_FOUND,
            NOT_AUTHOR, MESSAGE_DELETED, PERSISTENCE_FAILED
        """
        try:
            with cls.atomic():
                lookup = cls._own_message_for_update(conversation_id, message_id, user_id)
                if not lookup.success:
                    return lookup
                message = lookup.data

                if message.is_deleted:
                    return ServiceResult.failure(
                        "Message is already deleted",
                        error_code=ErrorCode.MESSAGE_DELETED,
                    )

                message.soft_delete()
        except DatabaseError as e:
            return cls.handle_exception(
                e,
                f"delete message {message_id}",
                error_code=ErrorCode.PERSISTENCE_FAILED,
                public_message="Message could not be deleted",
            )

        cls.get_logger().info(f"User {user_id} deleted message {message_id}")
        return ServiceResult.success(message)

    @classmethod
    def list_messages(
        cls, conversation_id: int, user_id: int
    ) -> ServiceResult[QuerySet[Message]]:
        """
        Messages of a conversation for a participant, oldest first.

        Deleted messages are included as tombstones (empty content).
        """
        access = ConversationService.get_for_participant(conversation_id, user_id)
        if not access.success:
            return access
        return ServiceResult.success(
            Message.objects.filter(conversation_id=conversation_id)
            .select_related("sender")
            .order_by("created_at", "id")
        )

    @classmethod
    def _own_message_for_update(
        cls, conversation_id: int, message_id: int, user_id: int
    ) -> ServiceResult[Message]:
        """Participation, existence and authorship checks for edit/delete."""
        access = ConversationService.get_for_participant(conversation_id, user_id)
        if not access.success:
            return access

        message = (
            Message.objects.select_for_update()
            .filter(pk=message_id, conversation_id=conversation_id)
            .first()
        )
        if message is None:
            return ServiceResult.failure(
                "Message not found",
                error_code=ErrorCode.MESSAGE_NOT_FOUND,
            )
        if message.sender_id != user_id:
            return ServiceResult.failure(
                "You can only change your own messages",
                error_code=ErrorCode.NOT_AUTHOR,
            )
        return ServiceResult.success(message)

    @staticmethod
    def _clean_content(content: str | None) -> ServiceResult[str]:
        content = content.strip() if content else ""
        if not content:
            return ServiceResult.failure(
                "Message content cannot be empty",
                error_code=ErrorCode.EMPTY_CONTENT,
            )
        if len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content exceeds {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code=ErrorCode.CONTENT_TOO_LONG,
            )
        return ServiceResult.success(content)
