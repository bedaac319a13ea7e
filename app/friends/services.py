"""
Friend request service layer.

FriendService owns the friend request lifecycle:
    send_request -> PENDING -> accept (creates Friendship) | decline

Usage:
    from friends.services import FriendService

    result = FriendService.send_request(sender=user, receiver_id=2)
    if result.success:
        friend_request, created = result.data

    FriendService.pending_received(user)   # feeds the client badge count
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Final

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError
from django.db.models import Q
from django.utils import timezone

from core.services import BaseService, ServiceResult
from friends.models import FriendRequest, FriendRequestStatus, Friendship

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User

logger = logging.getLogger(__name__)


class FriendErrorCode:
    SELF_REQUEST: Final[str] = "SELF_REQUEST"
    USER_NOT_FOUND: Final[str] = "USER_NOT_FOUND"
    ALREADY_FRIENDS: Final[str] = "ALREADY_FRIENDS"
    REQUEST_NOT_FOUND: Final[str] = "REQUEST_NOT_FOUND"
    NOT_RECEIVER: Final[str] = "NOT_RECEIVER"
    NOT_PENDING: Final[str] = "NOT_PENDING"
    PERSISTENCE_FAILED: Final[str] = "PERSISTENCE_FAILED"


class FriendService(BaseService):
    """
    Service for friend requests and friendships.

    Methods:
        send_request: Create a pending request (idempotent while pending)
        accept: Receiver accepts; creates the Friendship
        decline: Receiver declines
        pending_received: Pending requests addressed to a user
        pending_sent: Pending requests a user has sent
        list_friends: Users the given user is friends with
    """

    @classmethod
    def send_request(
        cls, sender: User, receiver_id: int
    ) -> ServiceResult[tuple[FriendRequest, bool]]:
        """
        Send a friend request.

        Sending again while a request is pending returns the pending request
        with created=False. If the receiver already has a pending request to
        the sender, that request is accepted instead.

        Error codes:
            SELF_REQUEST, USER_NOT_FOUND, ALREADY_FRIENDS, PERSISTENCE_FAILED
        """
        if receiver_id == sender.id:
            return ServiceResult.failure(
                "Cannot send a friend request to yourself",
                error_code=FriendErrorCode.SELF_REQUEST,
            )

        if not get_user_model().objects.filter(pk=receiver_id, is_active=True).exists():
            return ServiceResult.failure(
                "User not found", error_code=FriendErrorCode.USER_NOT_FOUND
            )

        if cls.are_friends(sender.id, receiver_id):
            return ServiceResult.failure(
                "You are already friends", error_code=FriendErrorCode.ALREADY_FRIENDS
            )

        pending = FriendRequest.objects.filter(
            status=FriendRequestStatus.PENDING
        )
        existing = pending.filter(sender=sender, receiver_id=receiver_id).first()
        if existing is not None:
            return ServiceResult.success((existing, False))

        reverse = pending.filter(sender_id=receiver_id, receiver=sender).first()
        if reverse is not None:
            cls.get_logger().info(
                f"User {sender.id} answered pending request {reverse.id} by sending one back"
            )
            return cls.accept(reverse.id, sender).map(lambda request: (request, False))

        try:
            with cls.atomic():
                friend_request = FriendRequest.objects.create(
                    sender=sender, receiver_id=receiver_id
                )
        except IntegrityError:
            # Concurrent duplicate hit the pending-unique constraint
            existing = pending.filter(sender=sender, receiver_id=receiver_id).first()
            if existing is None:
                raise
            return ServiceResult.success((existing, False))
        except DatabaseError as e:
            return cls.handle_exception(
                e,
                f"send friend request {sender.id} -> {receiver_id}",
                error_code=FriendErrorCode.PERSISTENCE_FAILED,
                public_message="Friend request could not be sent",
            )

        cls.get_logger().info(
            f"User {sender.id} sent friend request {friend_request.id} to {receiver_id}"
        )
        return ServiceResult.success((friend_request, True))

    @classmethod
    def accept(cls, request_id: int, user: User) -> ServiceResult[FriendRequest]:
        """Accept a pending request addressed to user."""
        return cls._respond(request_id, user, FriendRequestStatus.ACCEPTED)

    @classmethod
    def decline(cls, request_id: int, user: User) -> ServiceResult[FriendRequest]:
        """Decline a pending request addressed to user."""
        return cls._respond(request_id, user, FriendRequestStatus.DECLINED)

    @classmethod
    def pending_received(cls, user: User) -> QuerySet[FriendRequest]:
        return (
            FriendRequest.objects.filter(receiver=user, status=FriendRequestStatus.PENDING)
            .select_related("sender")
            .order_by("-created_at")
        )

    @classmethod
    def pending_sent(cls, user: User) -> QuerySet[FriendRequest]:
        return (
            FriendRequest.objects.filter(sender=user, status=FriendRequestStatus.PENDING)
            .select_related("receiver")
            .order_by("-created_at")
        )

    @classmethod
    def list_friends(cls, user: User) -> QuerySet[User]:
        friendships = Friendship.objects.filter(Q(user_lower=user) | Q(user_higher=user))
        friend_ids = [
            f.user_higher_id if f.user_lower_id == user.id else f.user_lower_id
            for f in friendships
        ]
        return get_user_model().objects.filter(pk__in=friend_ids).order_by("username")

    @staticmethod
    def are_friends(user_a_id: int, user_b_id: int) -> bool:
        lower, higher = sorted((user_a_id, user_b_id))
        return Friendship.objects.filter(user_lower_id=lower, user_higher_id=higher).exists()

    @classmethod
    def _respond(
        cls, request_id: int, user: User, new_status: str
    ) -> ServiceResult[FriendRequest]:
        try:
            with cls.atomic():
                friend_request = (
                    FriendRequest.objects.select_for_update().filter(pk=request_id).first()
                )
                if friend_request is None:
                    return ServiceResult.failure(
                        "Friend request not found",
                        error_code=FriendErrorCode.REQUEST_NOT_FOUND,
                    )
                if friend_request.receiver_id != user.id:
                    return ServiceResult.failure(
                        "Only the receiver can respond to a friend request",
                        error_code=FriendErrorCode.NOT_RECEIVER,
                    )
                if not friend_request.is_pending:
                    return ServiceResult.failure(
                        f"Friend request is already {friend_request.status}",
                        error_code=FriendErrorCode.NOT_PENDING,
                    )

                friend_request.status = new_status
                friend_request.responded_at = timezone.now()
                friend_request.save(update_fields=["status", "responded_at", "updated_at"])

                if new_status == FriendRequestStatus.ACCEPTED:
                    lower, higher = sorted(
                        (friend_request.sender_id, friend_request.receiver_id)
                    )
                    Friendship.objects.get_or_create(
                        user_lower_id=lower, user_higher_id=higher
                    )
        except DatabaseError as e:
            return cls.handle_exception(
                e,
                f"respond to friend request {request_id}",
                error_code=FriendErrorCode.PERSISTENCE_FAILED,
                public_message="Friend request could not be updated",
            )

        cls.get_logger().info(
            f"User {user.id} {new_status} friend request {request_id}"
        )
        return ServiceResult.success(friend_request)
