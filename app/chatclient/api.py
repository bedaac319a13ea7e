"""
HTTP client for the chat REST API.

ChatApiClient wraps an httpx.AsyncClient and turns HTTP failures into the
ChatApiError hierarchy below, so callers branch on exception type instead
of status codes:

    401/403          ChatApiAuthError
    404              ChatApiNotFoundError
    5xx, network     ChatApiUnavailableError
    other 4xx        ChatApiError (error_code carries the server code)

Usage:
    async with ChatApiClient(ClientConfig.from_env()) as api:
        [bob] = await api.search_users("bob")
        conversation = await api.create_conversation(bob["id"])
        await api.send_message(conversation["id"], "hi")
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from chatclient.config import ClientConfig

logger = logging.getLogger(__name__)


class ChatApiError(Exception):
    """Base error for REST request failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class ChatApiAuthError(ChatApiError):
    """Raised when the server rejects the token or the caller's access."""


class ChatApiNotFoundError(ChatApiError):
    """Raised when a conversation, message or user does not exist."""


class ChatApiUnavailableError(ChatApiError):
    """Raised when the server cannot be reached or could not persist."""


class ChatApiClient:
    """
    Async REST client for users, conversations, messages and friend requests.

    Args:
        config: Base URL, access token and timeout
        http: Pre-built httpx client (tests pass one with a MockTransport).
            Closed by aclose() either way.
    """

    def __init__(self, config: ClientConfig, http: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.http = http or httpx.AsyncClient(
            base_url=config.api_url,
            timeout=httpx.Timeout(config.request_timeout),
        )

    async def __aenter__(self) -> ChatApiClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def call(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Perform one request and decode its JSON body.

        Returns:
            The decoded body, or None for an empty response

        Raises:
            ChatApiError: or a subclass, see the module docstring
        """
        headers = {"Accept": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        try:
            response = await self.http.request(
                method, path, params=params, json=json, headers=headers
            )
        except httpx.TimeoutException as exc:
            raise ChatApiUnavailableError(f"Request to {path} timed out") from exc
        except httpx.HTTPError as exc:
            raise ChatApiUnavailableError(f"Request to {path} failed: {exc}") from exc

        if response.status_code >= 400:
            raise self._error_for(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ChatApiError(
                f"Non-JSON response from {path}", status_code=response.status_code
            ) from exc

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def search_users(
        self, query: str = "", visible_only: bool = False, mood: str = ""
    ) -> list[dict[str, Any]]:
        """Find users by handle, display name or email."""
        params: dict[str, Any] = {}
        if query:
            params["q"] = query
        if visible_only:
            params["visible_only"] = "true"
        if mood:
            params["mood"] = mood
        data = await self.call("GET", "/auth/users/", params=params or None)
        return data if isinstance(data, list) else []

    # -------------------------------------------------------------------------
    # Conversations
    # -------------------------------------------------------------------------

    async def list_conversations(self) -> list[dict[str, Any]]:
        """Conversations of the current user, most recently active first."""
        data = await self.call("GET", "/chat/conversations/")
        return data if isinstance(data, list) else []

    async def get_conversation(self, conversation_id: int) -> dict[str, Any]:
        return await self.call("GET", f"/chat/conversations/{conversation_id}/")

    async def create_conversation(self, other_user_id: int) -> dict[str, Any]:
        """Start a direct conversation, or return the existing one."""
        return await self.call(
            "POST", "/chat/conversations/", json={"other_user_id": other_user_id}
        )

    # -------------------------------------------------------------------------
    # Messages
    # -------------------------------------------------------------------------

    async def list_messages(
        self, conversation_id: int, page_size: int | None = None
    ) -> list[dict[str, Any]]:
        """All messages of a conversation, oldest first, following cursor pages."""
        params = {"page_size": page_size} if page_size else None
        data = await self.call(
            "GET", f"/chat/conversations/{conversation_id}/messages/", params=params
        )
        messages = list(data.get("results", []))
        while data.get("next"):
            data = await self.call("GET", data["next"])
            messages.extend(data.get("results", []))
        return messages

    async def send_message(
        self, conversation_id: int, content: str, reply_to_id: int | None = None
    ) -> dict[str, Any]:
        """Send over REST. The server broadcasts it to the room like a socket send."""
        payload: dict[str, Any] = {"content": content}
        if reply_to_id is not None:
            payload["reply_to_id"] = reply_to_id
        return await self.call(
            "POST", f"/chat/conversations/{conversation_id}/messages/", json=payload
        )

    async def edit_message(
        self, conversation_id: int, message_id: int, content: str
    ) -> dict[str, Any]:
        return await self.call(
            "PATCH",
            f"/chat/conversations/{conversation_id}/messages/{message_id}/",
            json={"content": content},
        )

    async def delete_message(self, conversation_id: int, message_id: int) -> dict[str, Any]:
        """Soft-delete a message; returns its tombstone."""
        return await self.call(
            "DELETE", f"/chat/conversations/{conversation_id}/messages/{message_id}/"
        )

    # -------------------------------------------------------------------------
    # Friends
    # -------------------------------------------------------------------------

    async def list_received_friend_requests(self) -> list[dict[str, Any]]:
        """Pending requests addressed to the current user; feeds the badge."""
        data = await self.call("GET", "/friends/requests/received/")
        return data if isinstance(data, list) else []

    async def list_sent_friend_requests(self) -> list[dict[str, Any]]:
        data = await self.call("GET", "/friends/requests/sent/")
        return data if isinstance(data, list) else []

    @staticmethod
    def _error_for(response: httpx.Response) -> ChatApiError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("error") or body.get("detail") or f"HTTP {response.status_code}"
        error_code = body.get("error_code")
        status_code = response.status_code

        if status_code in {401, 403}:
            error_class = ChatApiAuthError
        elif status_code == 404:
            error_class = ChatApiNotFoundError
        elif status_code >= 500:
            error_class = ChatApiUnavailableError
        else:
            error_class = ChatApiError
        return error_class(str(message), status_code=status_code, error_code=error_code)
