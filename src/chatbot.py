"""Floating support chatbot."""

from __future__ import annotations

from typing import Any, Optional

from src.generation import GenerationError, GenerationService
from src.models import ChatMessage

GREETING = "Hello! I am your NexusAI assistant. How can I help you architect your next platform?"
EMPTY_REPLY = "I couldn't process that request."
ERROR_REPLY = "Sorry, I encountered an error. Please try again later."


class ChatBot:
    """Conversation log plus a single-request-at-a-time send loop."""

    def __init__(self, service: GenerationService) -> None:
        self.service = service
        self.messages: list[ChatMessage] = [ChatMessage(role="bot", text=GREETING)]
        self.is_loading = False

    def history(self) -> list[dict[str, Any]]:
        """Prior turns in the wire format, excluding the canned greeting."""
        return [
            {"role": "user" if m.role == "user" else "model", "parts": [{"text": m.text}]}
            for m in self.messages[1:]
        ]

    async def send(self, text: str) -> Optional[ChatMessage]:
        """Send *text* and append the bot's reply.

        Ignored when *text* is blank or a previous message is still pending.
        """
        message = text.strip()
        if not message or self.is_loading:
            return None
        history = self.history()
        self.messages.append(ChatMessage(role="user", text=message))
        self.is_loading = True
        try:
            reply = await self.service.chat(message, history)
            answer = ChatMessage(role="bot", text=reply or EMPTY_REPLY)
        except GenerationError:
            answer = ChatMessage(role="bot", text=ERROR_REPLY)
        finally:
            self.is_loading = False
        self.messages.append(answer)
        return answer
