"""Unit tests for the support chatbot (src.chatbot)."""

from __future__ import annotations

import asyncio

import pytest

from src.chatbot import EMPTY_REPLY, ERROR_REPLY, GREETING, ChatBot
from src.generation import GenerationError


class TestChatBot:
    @pytest.mark.unit
    def test_starts_with_greeting(self, service):
        bot = ChatBot(service)
        assert [(m.role, m.text) for m in bot.messages] == [("bot", GREETING)]
        assert bot.history() == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_appends_both_turns(self, service):
        service.chat.return_value = "Try a serverless backend."
        bot = ChatBot(service)

        reply = await bot.send("  How do I scale?  ")

        assert reply.text == "Try a serverless backend."
        assert [m.role for m in bot.messages] == ["bot", "user", "bot"]
        assert bot.messages[1].text == "How do I scale?"
        assert service.chat.call_args[0] == ("How do I scale?", [])

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_history_forwarded(self, service):
        service.chat.side_effect = ["first", "second"]
        bot = ChatBot(service)
        await bot.send("one")
        await bot.send("two")

        history = service.chat.call_args[0][1]
        assert history == [
            {"role": "user", "parts": [{"text": "one"}]},
            {"role": "model", "parts": [{"text": "first"}]},
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_blank_message_ignored(self, service):
        bot = ChatBot(service)
        assert await bot.send("   ") is None
        service.chat.assert_not_awaited()
        assert len(bot.messages) == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_reply_placeholder(self, service):
        service.chat.return_value = ""
        reply = await ChatBot(service).send("hi")
        assert reply.text == EMPTY_REPLY

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_error_reply(self, service):
        service.chat.side_effect = GenerationError("down")
        bot = ChatBot(service)
        reply = await bot.send("hi")
        assert reply.text == ERROR_REPLY
        assert bot.is_loading is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_send_while_loading_ignored(self, service):
        release = asyncio.Event()

        async def slow(*args, **kwargs):
            await release.wait()
            return "done"

        service.chat.side_effect = slow
        bot = ChatBot(service)

        pending = asyncio.ensure_future(bot.send("first"))
        await asyncio.sleep(0)
        assert bot.is_loading is True
        assert await bot.send("second") is None
        release.set()
        await pending

        assert [m.text for m in bot.messages] == [GREETING, "first", "done"]
