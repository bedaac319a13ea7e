"""
URL configuration for the friends API.

All URLs are prefixed with /api/v1/friends/ in the main URL configuration.
"""

from django.urls import path

from friends.views import (
    FriendListView,
    FriendRequestCreateView,
    FriendRequestRespondView,
    ReceivedFriendRequestsView,
    SentFriendRequestsView,
)

app_name = "friends"

urlpatterns = [
    path("requests/", FriendRequestCreateView.as_view(), name="request-create"),
    path(
        "requests/received/",
        ReceivedFriendRequestsView.as_view(),
        name="request-received",
    ),
    path("requests/sent/", SentFriendRequestsView.as_view(), name="request-sent"),
    path(
        "requests/<int:pk>/accept/",
        FriendRequestRespondView.as_view(decision="accept"),
        name="request-accept",
    ),
    path(
        "requests/<int:pk>/decline/",
        FriendRequestRespondView.as_view(decision="decline"),
        name="request-decline",
    ),
    path("list/", FriendListView.as_view(), name="list"),
]
