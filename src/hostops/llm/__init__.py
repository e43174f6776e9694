"""Language-model providers for the conversational assistant."""

import logging
import os

from hostops.config import PipelineConfig, get_config
from hostops.llm.anthropic_provider import AnthropicProvider
from hostops.llm.openai_provider import OpenAIProvider
from hostops.llm.provider import (
    LLMProvider,
    LLMResponse,
    ProviderError,
    ProviderNotConfiguredError,
    TokenUsage,
)
from hostops.llm.stub_provider import StubLLMProvider

logger = logging.getLogger(__name__)

__all__ = [
    "AnthropicProvider",
    "LLMProvider",
    "LLMResponse",
    "OpenAIProvider",
    "ProviderError",
    "ProviderNotConfiguredError",
    "StubLLMProvider",
    "TokenUsage",
    "get_llm_provider",
    "has_credential",
    "is_stub_mode",
]

_PROVIDER_CLASSES: dict[str, type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
}


def is_stub_mode() -> bool:
    """Check HOSTOPS_LLM_MODE (default: "live", options: "live", "stub")."""
    return os.environ.get("HOSTOPS_LLM_MODE", "live").lower() == "stub"


def has_credential(name: str, config: PipelineConfig | None = None) -> bool:
    """Whether the named provider can be called.

    Stub mode treats every provider as configured.
    """
    if is_stub_mode():
        return True
    config = config or get_config()
    try:
        return config.get_provider(name).get_api_key() is not None
    except ValueError:
        return False


def get_llm_provider(name: str, config: PipelineConfig | None = None) -> LLMProvider:
    """Get a provider instance by name.

    Args:
        name: "anthropic" or "openai"
        config: Pipeline configuration (default: cached config)

    Returns:
        A live provider, or StubLLMProvider when HOSTOPS_LLM_MODE=stub

    Raises:
        ValueError: If the provider name is unknown
        ProviderNotConfiguredError: If the provider has no API key
    """
    if name not in _PROVIDER_CLASSES:
        raise ValueError(f"Unknown provider: {name}")

    if is_stub_mode():
        return StubLLMProvider(name=name)

    config = config or get_config()
    return _PROVIDER_CLASSES[name](config.get_provider(name))
