"""Factories for friends models."""

import factory
from factory.django import DjangoModelFactory

from authentication.tests.factories import UserFactory
from friends.models import FriendRequest, FriendRequestStatus, Friendship


class FriendRequestFactory(DjangoModelFactory):
    class Meta:
        model = FriendRequest

    sender = factory.SubFactory(UserFactory)
    receiver = factory.SubFactory(UserFactory)
    status = FriendRequestStatus.PENDING


class FriendshipFactory(DjangoModelFactory):
    """
    Friendship between two users; pass them in any order.

    Usage:
        FriendshipFactory(users=(alice, bob))
    """

    class Meta:
        model = Friendship
        exclude = ("users",)

    users = factory.LazyFunction(lambda: (UserFactory(), UserFactory()))
    user_lower = factory.LazyAttribute(lambda o: min(o.users, key=lambda u: u.id))
    user_higher = factory.LazyAttribute(lambda o: max(o.users, key=lambda u: u.id))
