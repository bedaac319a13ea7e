"""Tests for Composer."""

import pytest

from chatclient.compose import Composer


@pytest.mark.asyncio
class TestComposer:
    async def test_successful_send_clears_draft(self, api):
        composer = Composer(api, conversation_id=10)
        composer.set_draft("hello")
        composer.reply_to(4)

        message = await composer.send()

        assert message["content"] == "hello"
        assert api.sent == [(10, "hello", 4)]
        assert composer.draft == ""
        assert composer.reply_to_id is None
        assert composer.last_error is None

    async def test_failed_send_keeps_draft(self, api, unavailable):
        """
        Why it matters: A message the server did not save must stay in the
        input so the user can retry without retyping it.
        """
        api.send_error = unavailable
        composer = Composer(api, conversation_id=10)
        composer.set_draft("hello")
        composer.reply_to(4)

        assert await composer.send() is None
        assert composer.draft == "hello"
        assert composer.reply_to_id == 4
        assert composer.last_error is unavailable
        assert composer.sending is False

    async def test_blank_draft_is_not_sent(self, api):
        composer = Composer(api, conversation_id=10)
        composer.set_draft("   ")

        assert composer.can_send is False
        assert await composer.send() is None
        assert api.sent == []

    async def test_retry_after_failure(self, api, unavailable):
        api.send_error = unavailable
        composer = Composer(api, conversation_id=10)
        composer.set_draft("hello")
        await composer.send()

        api.send_error = None
        await composer.send()

        assert api.sent == [(10, "hello", None)]
        assert composer.last_error is None
