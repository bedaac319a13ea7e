"""Serializers for the friends API."""

from rest_framework import serializers

from authentication.serializers import UserSummarySerializer
from friends.models import FriendRequest


class FriendRequestSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)
    receiver = UserSummarySerializer(read_only=True)

    class Meta:
        model = FriendRequest
        fields = ["id", "sender", "receiver", "status", "created_at", "responded_at"]
        read_only_fields = fields


class FriendRequestCreateSerializer(serializers.Serializer):
    receiver_id = serializers.IntegerField(
        min_value=1, help_text="User to send the request to"
    )
