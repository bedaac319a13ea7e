"""Django admin configuration for friends models."""

from django.contrib import admin

from friends.models import FriendRequest, Friendship


@admin.register(FriendRequest)
class FriendRequestAdmin(admin.ModelAdmin):
    list_display = ["id", "sender", "receiver", "status", "created_at", "responded_at"]
    list_filter = ["status", "created_at"]
    search_fields = ["sender__email", "receiver__email"]
    raw_id_fields = ["sender", "receiver"]
    ordering = ["-created_at"]


@admin.register(Friendship)
class FriendshipAdmin(admin.ModelAdmin):
    list_display = ["id", "user_lower", "user_higher", "created_at"]
    raw_id_fields = ["user_lower", "user_higher"]
