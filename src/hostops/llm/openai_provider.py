"""OpenAI Chat Completions provider."""

import logging
from typing import Any

import openai

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


class OpenAIProvider(LLMProvider):
    """Calls the OpenAI Chat Completions API through the openai client."""

    name = "openai"

    def __init__(self, config: ProviderConfig, api_key: str | None = None) -> None:
        self.config = config
        self.api_key = api_key or config.get_api_key()
        if not self.api_key:
            raise ProviderNotConfiguredError(
                self.name, f"{config.api_key_env} environment variable is not set"
            )

        # The client's base URL includes the API version
        base_url = f"{config.base_url.rstrip('/')}/v1" if config.base_url else None
        # Fallback between providers is the router's job, so no client retries
        self.client = openai.OpenAI(
            api_key=self.api_key,
            base_url=base_url,
            timeout=config.timeout_seconds,
            max_retries=0,
        )

    def send(
        self,
        messages: list[dict[str, Any]],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> LLMResponse:
        logger.info("Calling OpenAI model=%s messages=%d", self.config.model, len(messages))
        try:
            completion = self.client.chat.completions.create(
                model=self.config.model,
                messages=[{"role": m["role"], "content": m["content"]} for m in messages],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as e:
            raise ProviderError(self.name, f"Request timed out: {e}") from e
        except openai.APIStatusError as e:
            detail = redact_secrets(e.response.text[:500])
            logger.error("OpenAI returned HTTP %d: %s", e.status_code, detail)
            raise ProviderError(self.name, f"HTTP {e.status_code}", status_code=e.status_code) from e
        except openai.APIError as e:
            raise ProviderError(self.name, f"Request failed: {redact_secrets(str(e))}") from e

        try:
            text = completion.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderError(self.name, "Response has no choices") from e

        usage = getattr(completion, "usage", None)
        return LLMResponse(
            text=text,
            provider=self.name,
            model=getattr(completion, "model", None) or self.config.model,
            token_usage=TokenUsage(
                prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
        )
