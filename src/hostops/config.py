"""Pipeline configuration loader.

Loads pipeline thresholds and model provider settings from a YAML file with
safe defaults.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_ENV = "HOSTOPS_CONFIG_PATH"


@dataclass
class ProviderConfig:
    """Settings for one language-model provider."""

    name: str
    api_key_env: str
    model: str
    timeout_seconds: float = 30.0
    base_url: str | None = None

    def get_api_key(self) -> str | None:
        """Read the provider's API key from the environment."""
        value = os.environ.get(self.api_key_env, "").strip()
        return value or None


@dataclass
class PipelineConfig:
    """Thresholds and identities used by the command pipeline."""

    automation_actor: str = "AI Agent"
    rate_limit_max_actions: int = 10
    rate_limit_window_seconds: int = 60
    max_concurrent_jobs: int = 3
    blackout_weekday: int | None = 6
    pending_action_ttl_seconds: int = 300
    suggestion_limit: int = 5
    providers: dict[str, ProviderConfig] = field(default_factory=dict)

    def get_provider(self, name: str) -> ProviderConfig:
        """Get configuration for a provider, falling back to built-in defaults.

        Raises:
            ValueError: If the provider name is unknown.
        """
        if name in self.providers:
            return self.providers[name]
        defaults = _get_default_providers()
        if name not in defaults:
            raise ValueError(f"Unknown provider: {name}")
        return defaults[name]


def _get_default_providers() -> dict[str, ProviderConfig]:
    return {
        "anthropic": ProviderConfig(
            name="anthropic",
            api_key_env="ANTHROPIC_API_KEY",
            model="claude-3-5-sonnet-20241022",
        ),
        "openai": ProviderConfig(
            name="openai",
            api_key_env="OPENAI_API_KEY",
            model="gpt-4o",
        ),
    }


def _get_default_config() -> PipelineConfig:
    """Get safe default pipeline configuration."""
    return PipelineConfig(providers=_get_default_providers())


def _require_int(data: dict[str, Any], key: str, default: int, minimum: int = 0) -> int:
    value = data.get(key, default)
    # bool is a subclass of int
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Field '{key}' must be an integer")
    if value < minimum:
        raise ValueError(f"Field '{key}' must be >= {minimum}")
    return value


def _parse_pipeline_section(data: dict[str, Any], providers: dict[str, ProviderConfig]) -> PipelineConfig:
    """Parse the ``pipeline`` section of the config file.

    Args:
        data: Dictionary containing pipeline configuration.
        providers: Already parsed provider configurations.

    Returns:
        PipelineConfig with parsed values.

    Raises:
        ValueError: If a field has the wrong type or an invalid value.
    """
    defaults = PipelineConfig()

    actor = data.get("automation_actor", defaults.automation_actor)
    if not isinstance(actor, str) or not actor.strip():
        raise ValueError("Field 'automation_actor' must be a non-empty string")

    blackout = data.get("blackout_weekday", defaults.blackout_weekday)
    if blackout is not None:
        if isinstance(blackout, bool) or not isinstance(blackout, int) or not 0 <= blackout <= 6:
            raise ValueError("Field 'blackout_weekday' must be an integer 0-6 or null")

    return PipelineConfig(
        automation_actor=actor,
        rate_limit_max_actions=_require_int(
            data, "rate_limit_max_actions", defaults.rate_limit_max_actions
        ),
        rate_limit_window_seconds=_require_int(
            data, "rate_limit_window_seconds", defaults.rate_limit_window_seconds, minimum=1
        ),
        max_concurrent_jobs=_require_int(
            data, "max_concurrent_jobs", defaults.max_concurrent_jobs, minimum=1
        ),
        blackout_weekday=blackout,
        pending_action_ttl_seconds=_require_int(
            data, "pending_action_ttl_seconds", defaults.pending_action_ttl_seconds, minimum=1
        ),
        suggestion_limit=_require_int(data, "suggestion_limit", defaults.suggestion_limit, minimum=1),
        providers=providers,
    )


def _parse_providers(data: dict[str, Any]) -> dict[str, ProviderConfig]:
    providers = _get_default_providers()
    for name, provider_data in data.items():
        if not isinstance(provider_data, dict):
            raise ValueError(f"Provider config must be a dictionary: {name}")
        base = providers.get(name)
        api_key_env = provider_data.get("api_key_env", base.api_key_env if base else None)
        model = provider_data.get("model", base.model if base else None)
        if not api_key_env or not model:
            raise ValueError(f"Provider '{name}' requires 'api_key_env' and 'model'")
        timeout = provider_data.get("timeout_seconds", base.timeout_seconds if base else 30.0)
        if not isinstance(timeout, int | float) or timeout <= 0:
            raise ValueError(f"Provider '{name}' timeout_seconds must be positive")
        providers[name] = ProviderConfig(
            name=name,
            api_key_env=api_key_env,
            model=model,
            timeout_seconds=float(timeout),
            base_url=provider_data.get("base_url"),
        )
    return providers


def load_config(config_path: str | None = None) -> PipelineConfig:
    """Load pipeline configuration from YAML file.

    Args:
        config_path: Path to the configuration YAML file. If None, uses
                    HOSTOPS_CONFIG_PATH or the default path config/hostops.yaml

    Returns:
        PipelineConfig. If the file is missing or invalid, returns safe defaults.
    """
    if config_path is None:
        config_path = os.environ.get(DEFAULT_CONFIG_ENV)
    if config_path is None:
        project_root = Path(__file__).parent.parent.parent
        config_path = os.path.join(project_root, "config", "hostops.yaml")

    if not os.path.exists(config_path):
        return _get_default_config()

    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return _get_default_config()
        if not isinstance(data, dict):
            raise ValueError("Config file must contain a YAML dictionary")

        providers_data = data.get("providers") or {}
        if not isinstance(providers_data, dict):
            raise ValueError("'providers' section must be a dictionary")
        providers = _parse_providers(providers_data)

        pipeline_data = data.get("pipeline") or {}
        if not isinstance(pipeline_data, dict):
            raise ValueError("'pipeline' section must be a dictionary")

        return _parse_pipeline_section(pipeline_data, providers)

    except (yaml.YAMLError, ValueError, KeyError, OSError) as e:
        logger.warning("Failed to load pipeline config from %s: %s", config_path, e)
        logger.warning("Using safe default pipeline configuration")
        return _get_default_config()


_cached_config: PipelineConfig | None = None


def get_config(config_path: str | None = None) -> PipelineConfig:
    """Get the pipeline configuration (cached)."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config(config_path)
    return _cached_config


def reload_config(config_path: str | None = None) -> PipelineConfig:
    """Reload pipeline configuration from file.

    Args:
        config_path: Optional path to config file. Uses default if None.

    Returns:
        Newly loaded PipelineConfig.
    """
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config


def clear_config_cache():
    """Clear the cached configuration.

    Used primarily for testing to ensure clean state between tests.
    """
    global _cached_config
    _cached_config = None
