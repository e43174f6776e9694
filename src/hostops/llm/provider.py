"""Language-model provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


class ProviderError(Exception):
    """A provider call failed (network, HTTP status or malformed response)."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class ProviderNotConfiguredError(ProviderError):
    """The provider has no API key configured."""


@dataclass
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class LLMResponse:
    """Text answer from a provider."""

    text: str
    provider: str
    model: str
    token_usage: TokenUsage | None = None


class LLMProvider(ABC):
    """Abstract base class for language-model providers."""

    name: str = "provider"

    @abstractmethod
    def send(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        """Send a conversation and return the model's reply.

        Args:
            messages: Ordered ``{"role", "content"}`` dicts. Roles are
                ``system``, ``user`` or ``assistant``.
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with the reply text and token usage when reported

        Raises:
            ProviderError: If the call fails
        """
        pass
