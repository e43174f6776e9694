"""Stub language-model provider for development and testing."""

import logging
from typing import Any

from hostops.llm.provider import LLMProvider, LLMResponse, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_REPLY = (
    "I can help you manage bookings, cleaning jobs, staff assignments and the "
    "calendar. Tell me what you would like to do."
)


class StubLLMProvider(LLMProvider):
    """Returns a fixed reply without any network access."""

    def __init__(self, name: str = "stub", reply: str = DEFAULT_REPLY) -> None:
        self.name = name
        self.reply = reply
        self.calls: list[list[dict[str, Any]]] = []

    def send(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        self.calls.append(messages)
        prompt_words = sum(len(str(m.get("content", "")).split()) for m in messages)
        logger.debug("Stub provider %s answering %d messages", self.name, len(messages))
        return LLMResponse(
            text=self.reply,
            provider=self.name,
            model="stub",
            token_usage=TokenUsage(
                prompt_tokens=prompt_words,
                completion_tokens=len(self.reply.split()),
            ),
        )
