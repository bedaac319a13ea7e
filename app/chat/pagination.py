"""
Pagination classes for chat API.

MessageCursorPagination pages through a conversation's messages oldest
first. Cursor pagination keeps pages stable while new messages are being
inserted, which offset pagination does not.

Conversation lists are not paginated; a user's direct conversations are
returned in one response ordered by latest activity.
"""

from rest_framework.pagination import CursorPagination

from chat.constants import MESSAGE_CONFIG


class MessageCursorPagination(CursorPagination):
    """
    Cursor pagination for message lists.

    Orders messages oldest-first for natural chat reading experience.
    Uses (created_at, id) for stable cursor position.

    Query parameters:
        cursor: Encoded cursor for position
        page_size: Number of messages (optional override)
    """

    page_size = MESSAGE_CONFIG.PAGE_SIZE
    max_page_size = MESSAGE_CONFIG.MAX_PAGE_SIZE
    page_size_query_param = "page_size"
    ordering = ("created_at", "id")
    cursor_query_param = "cursor"
