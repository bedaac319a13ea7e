"""Message composer: keeps the draft until the server has accepted it."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from chatclient.api import ChatApiError

if TYPE_CHECKING:
    from chatclient.api import ChatApiClient

logger = logging.getLogger(__name__)


class Composer:
    """
    Draft state for one conversation.

    send() posts the draft over REST. The draft is cleared only when the
    server returns the saved message; on any failure it is kept so the user
    can retry, and last_error holds the reason.
    """

    def __init__(self, api: ChatApiClient, conversation_id: int) -> None:
        self.api = api
        self.conversation_id = conversation_id
        self.draft = ""
        self.reply_to_id: int | None = None
        self.last_error: ChatApiError | None = None
        self.sending = False

    def set_draft(self, text: str) -> None:
        self.draft = text

    def reply_to(self, message_id: int | None) -> None:
        self.reply_to_id = message_id

    @property
    def can_send(self) -> bool:
        return bool(self.draft.strip()) and not self.sending

    async def send(self) -> dict[str, Any] | None:
        """
        Submit the draft.

        Returns:
            The saved message, or None if nothing was sent or the send failed
        """
        if not self.can_send:
            return None

        self.sending = True
        try:
            message = await self.api.send_message(
                self.conversation_id, self.draft, reply_to_id=self.reply_to_id
            )
        except ChatApiError as exc:
            logger.warning(
                f"Send to conversation {self.conversation_id} failed: {exc}"
            )
            self.last_error = exc
            return None
        finally:
            self.sending = False

        self.draft = ""
        self.reply_to_id = None
        self.last_error = None
        return message
