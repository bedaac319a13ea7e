"""
Tests for FriendService.

Covers the request lifecycle (send -> accept | decline), idempotent
re-sends, and the pending count that feeds the client badge.
"""

from unittest.mock import patch

import pytest
from django.db import DatabaseError

from friends.models import FriendRequest, FriendRequestStatus, Friendship
from friends.services import FriendErrorCode, FriendService
from friends.tests.factories import FriendRequestFactory, FriendshipFactory


@pytest.mark.django_db
class TestSendRequest:
    def test_creates_pending_request(self, alice, bob):
        result = FriendService.send_request(alice, bob.id)

        friend_request, created = result.data
        assert created is True
        assert friend_request.sender == alice
        assert friend_request.receiver == bob
        assert friend_request.status == FriendRequestStatus.PENDING

    def test_resend_while_pending_is_idempotent(self, alice, bob):
        first, _ = FriendService.send_request(alice, bob.id).data

        second, created = FriendService.send_request(alice, bob.id).data

        assert created is False
        assert second.id == first.id
        assert FriendRequest.objects.count() == 1

    def test_reverse_pending_request_is_accepted(self, alice, bob):
        """
        Why it matters: Two users adding each other should end up friends,
        not with two requests waiting on each other.
        """
        incoming = FriendRequestFactory(sender=bob, receiver=alice)

        result = FriendService.send_request(alice, bob.id)

        friend_request, created = result.data
        assert created is False
        assert friend_request.id == incoming.id
        assert friend_request.status == FriendRequestStatus.ACCEPTED
        assert FriendService.are_friends(alice.id, bob.id)

    def test_self_request(self, alice):
        result = FriendService.send_request(alice, alice.id)

        assert result.error_code == FriendErrorCode.SELF_REQUEST

    def test_unknown_receiver(self, alice):
        result = FriendService.send_request(alice, 999999)

        assert result.error_code == FriendErrorCode.USER_NOT_FOUND

    def test_inactive_receiver_is_not_found(self, alice, bob):
        bob.is_active = False
        bob.save()

        result = FriendService.send_request(alice, bob.id)

        assert result.error_code == FriendErrorCode.USER_NOT_FOUND

    def test_already_friends(self, alice, bob):
        FriendshipFactory(users=(alice, bob))

        result = FriendService.send_request(bob, alice.id)

        assert result.error_code == FriendErrorCode.ALREADY_FRIENDS

    def test_database_error_is_reported(self, alice, bob):
        with patch(
            "friends.services.FriendRequest.objects.create",
            side_effect=DatabaseError("down"),
        ):
            result = FriendService.send_request(alice, bob.id)

        assert result.success is False
        assert result.error_code == FriendErrorCode.PERSISTENCE_FAILED
        assert result.error == "Friend request could not be sent"


@pytest.mark.django_db
class TestRespond:
    def test_accept_creates_friendship_in_canonical_order(self, alice, bob):
        friend_request = FriendRequestFactory(sender=bob, receiver=alice)

        result = FriendService.accept(friend_request.id, alice)

        assert result.data.status == FriendRequestStatus.ACCEPTED
        assert result.data.responded_at is not None
        friendship = Friendship.objects.get()
        assert friendship.user_lower_id == min(alice.id, bob.id)
        assert friendship.user_higher_id == max(alice.id, bob.id)

    def test_decline_creates_no_friendship(self, alice, bob):
        friend_request = FriendRequestFactory(sender=bob, receiver=alice)

        result = FriendService.decline(friend_request.id, alice)

        assert result.data.status == FriendRequestStatus.DECLINED
        assert not Friendship.objects.exists()

    def test_only_receiver_can_respond(self, alice, bob):
        friend_request = FriendRequestFactory(sender=bob, receiver=alice)

        result = FriendService.accept(friend_request.id, bob)

        assert result.error_code == FriendErrorCode.NOT_RECEIVER
        friend_request.refresh_from_db()
        assert friend_request.is_pending

    def test_cannot_respond_twice(self, alice, bob):
        friend_request = FriendRequestFactory(sender=bob, receiver=alice)
        FriendService.decline(friend_request.id, alice)

        result = FriendService.accept(friend_request.id, alice)

        assert result.error_code == FriendErrorCode.NOT_PENDING

    def test_unknown_request(self, alice):
        result = FriendService.accept(999999, alice)

        assert result.error_code == FriendErrorCode.REQUEST_NOT_FOUND

    def test_declined_pair_can_request_again(self, alice, bob):
        friend_request = FriendRequestFactory(sender=bob, receiver=alice)
        FriendService.decline(friend_request.id, alice)

        result = FriendService.send_request(bob, alice.id)

        _, created = result.data
        assert created is True


@pytest.mark.django_db
class TestQueries:
    def test_pending_received_excludes_answered_and_sent(self, alice, bob, carol):
        waiting = FriendRequestFactory(sender=bob, receiver=alice)
        answered = FriendRequestFactory(sender=carol, receiver=alice)
        FriendService.decline(answered.id, alice)
        FriendRequestFactory(sender=alice, receiver=carol)

        assert list(FriendService.pending_received(alice)) == [waiting]

    def test_pending_sent_excludes_answered_and_received(self, alice, bob, carol):
        waiting = FriendRequestFactory(sender=alice, receiver=bob)
        answered = FriendRequestFactory(sender=alice, receiver=carol)
        FriendService.accept(answered.id, carol)
        FriendRequestFactory(sender=carol, receiver=alice)

        assert list(FriendService.pending_sent(alice)) == [waiting]

    def test_list_friends_from_either_side(self, alice, bob, carol):
        FriendshipFactory(users=(alice, bob))
        FriendshipFactory(users=(carol, alice))

        assert [u.username for u in FriendService.list_friends(alice)] == ["bob", "carol"]
        assert [u.username for u in FriendService.list_friends(bob)] == ["alice"]
