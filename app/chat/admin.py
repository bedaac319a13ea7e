"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Conversation management (participants inline)
- Participant access revocation (left_at)
- Message moderation
"""

from django.contrib import admin

from chat.models import Conversation, DirectConversationPair, Message, Participant


class ParticipantInline(admin.TabularInline):
    """Inline display of participants in conversation admin."""

    model = Participant
    extra = 0
    readonly_fields = ["joined_at"]
    raw_id_fields = ["user"]


@admin.register(Conversation)
class ConversationAdmin(admin.ModelAdmin):
    """Admin interface for Conversation model."""

    list_display = ["id", "created_at", "last_message_at"]
    list_filter = ["created_at"]
    search_fields = ["id", "participants__user__email"]
    readonly_fields = ["created_at", "updated_at", "last_message_at"]
    inlines = [ParticipantInline]
    ordering = ["-created_at"]


@admin.register(DirectConversationPair)
class DirectConversationPairAdmin(admin.ModelAdmin):
    """Admin interface for DirectConversationPair model."""

    list_display = ["conversation", "user_lower", "user_higher"]
    raw_id_fields = ["conversation", "user_lower", "user_higher"]


@admin.register(Participant)
class ParticipantAdmin(admin.ModelAdmin):
    """
    Admin interface for Participant model.

    Setting left_at revokes the user's access; the next send, edit, delete
    or read by that user is rejected.
    """

    list_display = ["id", "conversation", "user", "joined_at", "left_at"]
    list_filter = ["joined_at", "left_at"]
    search_fields = ["user__email", "user__username"]
    readonly_fields = ["created_at", "updated_at", "joined_at"]
    raw_id_fields = ["conversation", "user"]
    ordering = ["-joined_at"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "conversation",
        "sender",
        "content_preview",
        "is_deleted",
        "created_at",
    ]
    list_filter = ["is_deleted", "created_at"]
    search_fields = ["content", "sender__email"]
    readonly_fields = ["created_at", "updated_at", "edited_at", "deleted_at"]
    raw_id_fields = ["conversation", "sender", "reply_to"]
    ordering = ["-created_at"]

    @admin.display(description="Content Preview")
    def content_preview(self, obj: Message) -> str:
        """Return truncated content for list display."""
        max_length = 50
        if len(obj.content) > max_length:
            return obj.content[:max_length] + "..."
        return obj.content
