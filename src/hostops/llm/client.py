"""Model client: calls the routed provider with a single fallback."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from hostops.config import PipelineConfig
from hostops.llm import get_llm_provider, has_credential
from hostops.llm.provider import LLMProvider, ProviderError, TokenUsage
from hostops.llm.router import alternate, resolve_fallback
from hostops.metrics import get_metrics_collector, is_metrics_enabled

logger = logging.getLogger(__name__)

CONNECTIVITY_ERROR_REPLY = (
    "I'm having trouble reaching the AI service right now (connectivity error). "
    "Please try again in a moment."
)


@dataclass
class ChatResult:
    """Outcome of one conversational model call."""

    success: bool
    text: str
    provider: str
    actual_provider: str | None = None
    token_usage: TokenUsage | None = None
    response_time_ms: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "text": self.text,
            "provider": self.provider,
            "actual_provider": self.actual_provider,
            "token_usage": self.token_usage.to_dict() if self.token_usage else None,
            "response_time_ms": self.response_time_ms,
            "error": self.error,
        }


class ModelClient:
    """Send a conversation to a provider, falling back to the other one once."""

    def __init__(
        self,
        config: PipelineConfig,
        provider_factory: Callable[[str, PipelineConfig], LLMProvider] = get_llm_provider,
        credential_check: Callable[[str, PipelineConfig], bool] = has_credential,
    ) -> None:
        self.config = config
        self.provider_factory = provider_factory
        self.credential_check = credential_check

    def build_messages(
        self,
        message: str,
        system_prompt: str | None = None,
        history: list[dict[str, str]] | None = None,
    ) -> list[dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        for turn in history or []:
            if turn.get("role") in ("user", "assistant") and turn.get("content"):
                messages.append({"role": turn["role"], "content": turn["content"]})
        messages.append({"role": "user", "content": message})
        return messages

    def chat(
        self,
        message: str,
        provider: str,
        system_prompt: str | None = None,
        history: list[dict[str, str]] | None = None,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> ChatResult:
        """Answer a message with the routed provider.

        Args:
            message: The user's message
            provider: Provider chosen by the router
            system_prompt: Optional system instructions
            history: Earlier ``{"role", "content"}`` turns
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            ChatResult. ``success`` is False with a connectivity error reply
            when both providers fail.
        """
        messages = self.build_messages(message, system_prompt, history)
        start = time.perf_counter()

        first = resolve_fallback(provider, lambda name: self.credential_check(name, self.config))
        errors = []
        for candidate in (first, alternate(first)):
            try:
                response = self.provider_factory(candidate, self.config).send(
                    messages, temperature=temperature, max_tokens=max_tokens
                )
            except ProviderError as e:
                logger.warning("Provider %s failed: %s", candidate, e)
                errors.append(str(e))
                continue

            if is_metrics_enabled():
                get_metrics_collector().record_provider_call(candidate)
            return ChatResult(
                success=True,
                text=response.text,
                provider=provider,
                actual_provider=candidate,
                token_usage=response.token_usage,
                response_time_ms=int((time.perf_counter() - start) * 1000),
            )

        logger.error("All providers failed for message: %s", "; ".join(errors))
        return ChatResult(
            success=False,
            text=CONNECTIVITY_ERROR_REPLY,
            provider=provider,
            response_time_ms=int((time.perf_counter() - start) * 1000),
            error="connectivity error: " + "; ".join(errors),
        )
