"""Model router: picks which provider answers a conversational message.

Analytical, planning and technical messages go to Anthropic; actions, creative
writing and general chat go to OpenAI. A caller may force or prefer a provider.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ANTHROPIC = "anthropic"
OPENAI = "openai"
PROVIDERS = (ANTHROPIC, OPENAI)

# Bucket order breaks ties.
TASK_KEYWORDS: dict[str, frozenset[str]] = {
    "analysis": frozenset(
        {
            "analyze", "analyse", "analysis", "assess", "compare", "efficiency",
            "evaluate", "examine", "insights", "metrics", "performance", "report",
            "review", "statistics", "trend", "trends",
        }
    ),
    "planning": frozenset(
        {
            "develop", "forecast", "optimal", "optimize", "organise", "organize",
            "plan", "planning", "prioritize", "roadmap", "schedule", "strategy",
        }
    ),
    "action": frozenset(
        {
            "add", "approve", "assign", "book", "cancel", "confirm", "create",
            "delete", "move", "notify", "reassign", "reschedule", "send", "update",
        }
    ),
    "creative": frozenset(
        {
            "compose", "creative", "description", "design", "draft", "email",
            "message", "slogan", "story", "welcome", "write",
        }
    ),
    "technical": frozenset(
        {
            "api", "bug", "code", "configure", "database", "debug", "error",
            "errors", "integration", "settings", "technical", "timeout",
            "troubleshoot",
        }
    ),
}

PROVIDER_FOR_TASK = {
    "analysis": ANTHROPIC,
    "technical": ANTHROPIC,
    "planning": ANTHROPIC,
    "action": OPENAI,
    "creative": OPENAI,
    "general": OPENAI,
}

_WORD = re.compile(r"[a-z']+")


@dataclass(frozen=True)
class RoutingOptions:
    """Caller overrides. ``"auto"`` or None means no override."""

    force_provider: str | None = None
    preferred_provider: str | None = None


@dataclass(frozen=True)
class ModelRoutingDecision:
    provider: str
    task_type: str
    confidence: float
    reasoning: str

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "task_type": self.task_type,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
        }


def alternate(provider: str) -> str:
    return OPENAI if provider == ANTHROPIC else ANTHROPIC


def _explicit(value: str | None) -> str | None:
    if value and value != "auto" and value in PROVIDERS:
        return value
    return None


class ModelRouter:
    """Keyword-based provider selection."""

    def route(self, message: str, options: RoutingOptions | None = None) -> ModelRoutingDecision:
        """Choose a provider for a message.

        Args:
            message: The user's message
            options: Forced or preferred provider

        Returns:
            ModelRoutingDecision with a confidence in [0.5, 1.0]
        """
        options = options or RoutingOptions()

        forced = _explicit(options.force_provider)
        if forced:
            return ModelRoutingDecision(forced, "general", 1.0, f"Provider forced: {forced}")

        preferred = _explicit(options.preferred_provider)
        if preferred:
            return ModelRoutingDecision(preferred, "general", 0.8, f"Provider preferred: {preferred}")

        task_type, hits = self.classify(message)
        provider = PROVIDER_FOR_TASK[task_type]
        if hits == 0:
            return ModelRoutingDecision(provider, "general", 0.5, "No task keywords; default routing")

        word_count = max(len(message.split()), 1)
        confidence = min(0.5 + 2 * (hits / word_count), 1.0)
        reasoning = f"Detected {task_type} task ({hits} keyword{'s' if hits != 1 else ''})"
        logger.debug("Routed message to %s: %s", provider, reasoning)
        return ModelRoutingDecision(provider, task_type, confidence, reasoning)

    def classify(self, message: str) -> tuple[str, int]:
        """Return the best task bucket and its keyword hit count."""
        words = _WORD.findall(message.lower())
        best, best_hits = "general", 0
        for task_type, keywords in TASK_KEYWORDS.items():
            hits = sum(1 for word in words if word in keywords)
            if hits > best_hits:
                best, best_hits = task_type, hits
        return best, best_hits


def resolve_fallback(provider: str, has_credential: Callable[[str], bool]) -> str:
    """Pick a provider that can actually be called.

    Returns the requested provider if credentialed, else the alternate if
    credentialed, else OpenAI so the failure surfaces downstream.
    """
    if has_credential(provider):
        return provider
    other = alternate(provider)
    if has_credential(other):
        logger.info("Provider %s not configured; falling back to %s", provider, other)
        return other
    logger.warning("No provider configured; defaulting to %s", OPENAI)
    return OPENAI
