"""Anthropic Messages API provider."""

import logging
from typing import Any

import anthropic

from hostops.config import ProviderConfig
from hostops.llm.provider import (
    LLMProvider,
    LLMResponse,
    ProviderError,
    ProviderNotConfiguredError,
    TokenUsage,
)
from hostops.logging_utils import redact_secrets

logger = logging.getLogger(__name__)


class AnthropicProvider(LLMProvider):
    """Calls the Anthropic Messages API through the anthropic client."""

    name = "anthropic"

    def __init__(self, config: ProviderConfig, api_key: str | None = None) -> None:
        """Initialize the provider.

        Args:
            config: Model, timeout and credential settings
            api_key: Explicit key (defaults to the env variable named in config)

        Raises:
            ProviderNotConfiguredError: If no API key is available
        """
        self.config = config
        self.api_key = api_key or config.get_api_key()
        if not self.api_key:
            raise ProviderNotConfiguredError(
                self.name, f"{config.api_key_env} environment variable is not set"
            )

        self.client = anthropic.Anthropic(
            api_key=self.api_key,
            base_url=config.base_url.rstrip("/") if config.base_url else None,
            timeout=config.timeout_seconds,
            max_retries=0,
        )

    def send(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        # System prompts go in a top-level field, not in the message list
        system_parts = [m["content"] for m in messages if m.get("role") == "system"]
        request: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [
                {"role": m["role"], "content": m["content"]}
                for m in messages
                if m.get("role") != "system"
            ],
        }
        if system_parts:
            request["system"] = "\n\n".join(system_parts)

        logger.info("Calling Anthropic model=%s messages=%d", self.config.model, len(request["messages"]))
        try:
            message = self.client.messages.create(**request)
        except anthropic.APITimeoutError as e:
            raise ProviderError(self.name, f"Request timed out: {e}") from e
        except anthropic.APIStatusError as e:
            detail = redact_secrets(e.response.text[:500])
            logger.error("Anthropic returned HTTP %d: %s", e.status_code, detail)
            raise ProviderError(self.name, f"HTTP {e.status_code}", status_code=e.status_code) from e
        except anthropic.APIError as e:
            raise ProviderError(self.name, f"Request failed: {redact_secrets(str(e))}") from e

        try:
            text = "".join(
                block.text for block in message.content if getattr(block, "type", None) == "text"
            )
        except (AttributeError, TypeError) as e:
            raise ProviderError(self.name, "Response has no content") from e

        usage = getattr(message, "usage", None)
        return LLMResponse(
            text=text,
            provider=self.name,
            model=getattr(message, "model", None) or self.config.model,
            token_usage=TokenUsage(
                prompt_tokens=getattr(usage, "input_tokens", 0) or 0,
                completion_tokens=getattr(usage, "output_tokens", 0) or 0,
            ),
        )
