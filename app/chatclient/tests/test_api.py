"""Tests for ChatApiClient against an httpx.MockTransport."""

import json

import httpx
import pytest

from chatclient.api import (
    ChatApiAuthError,
    ChatApiClient,
    ChatApiError,
    ChatApiNotFoundError,
    ChatApiUnavailableError,
)


def make_client(config, handler):
    http = httpx.AsyncClient(base_url=config.api_url, transport=httpx.MockTransport(handler))
    return ChatApiClient(config, http=http)


@pytest.mark.asyncio
class TestRequests:
    async def test_sends_bearer_token(self, config):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[])

        async with make_client(config, handler) as api:
            await api.list_conversations()

        assert seen[0].headers["Authorization"] == "Bearer access-token"
        assert seen[0].url.path == "/api/v1/chat/conversations/"

    async def test_list_messages_follows_cursor(self, config):
        pages = {
            None: {
                "next": "http://testserver/api/v1/chat/conversations/5/messages/?cursor=abc",
                "results": [{"id": 1}, {"id": 2}],
            },
            "abc": {"next": None, "results": [{"id": 3}]},
        }

        def handler(request):
            return httpx.Response(200, json=pages[request.url.params.get("cursor")])

        async with make_client(config, handler) as api:
            messages = await api.list_messages(5)

        assert [m["id"] for m in messages] == [1, 2, 3]

    async def test_send_message_payload(self, config):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(201, json={"id": 9, "content": "hi"})

        async with make_client(config, handler) as api:
            message = await api.send_message(5, "hi", reply_to_id=3)
            await api.send_message(5, "again")

        assert message["id"] == 9
        assert bodies == [{"content": "hi", "reply_to_id": 3}, {"content": "again"}]

    async def test_empty_body_returns_none(self, config):
        async with make_client(config, lambda request: httpx.Response(204)) as api:
            assert await api.call("DELETE", "/anything/") is None

    async def test_non_list_friend_requests_is_empty(self, config):
        async with make_client(
            config, lambda request: httpx.Response(200, json={"unexpected": True})
        ) as api:
            assert await api.list_received_friend_requests() == []

    async def test_search_users_query(self, config):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=[{"id": 2, "username": "bob"}])

        async with make_client(config, handler) as api:
            users = await api.search_users("bo", visible_only=True, mood="happy")
            await api.search_users()

        assert users == [{"id": 2, "username": "bob"}]
        assert seen[0].url.path == "/api/v1/auth/users/"
        assert dict(seen[0].url.params) == {"q": "bo", "visible_only": "true", "mood": "happy"}
        assert dict(seen[1].url.params) == {}

    async def test_sent_friend_requests(self, config):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json=[{"id": 4}])

        async with make_client(config, handler) as api:
            assert await api.list_sent_friend_requests() == [{"id": 4}]

        assert seen == ["/api/v1/friends/requests/sent/"]


@pytest.mark.asyncio
class TestErrors:
    @pytest.mark.parametrize(
        "status_code,error_class",
        [
            (401, ChatApiAuthError),
            (403, ChatApiAuthError),
            (404, ChatApiNotFoundError),
            (503, ChatApiUnavailableError),
            (400, ChatApiError),
        ],
    )
    async def test_status_maps_to_error(self, config, status_code, error_class):
        body = {"error": "Nope", "error_code": "SOME_CODE"}

        async with make_client(
            config, lambda request: httpx.Response(status_code, json=body)
        ) as api:
            with pytest.raises(error_class) as exc_info:
                await api.get_conversation(1)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.error_code == "SOME_CODE"
        assert str(exc_info.value) == "Nope"

    async def test_drf_detail_is_used_as_message(self, config):
        body = {"detail": "Authentication credentials were not provided."}

        async with make_client(config, lambda request: httpx.Response(401, json=body)) as api:
            with pytest.raises(ChatApiAuthError, match="credentials"):
                await api.list_conversations()

    async def test_non_json_error_body(self, config):
        async with make_client(
            config, lambda request: httpx.Response(502, text="<html>bad gateway</html>")
        ) as api:
            with pytest.raises(ChatApiUnavailableError, match="HTTP 502"):
                await api.list_conversations()

    async def test_network_failure_is_unavailable(self, config):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(config, handler) as api:
            with pytest.raises(ChatApiUnavailableError):
                await api.list_conversations()

    async def test_timeout_is_unavailable(self, config):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with make_client(config, handler) as api:
            with pytest.raises(ChatApiUnavailableError, match="timed out"):
                await api.list_conversations()
