"""Usage logging for conversational model calls.

Separate from the audit trail: records which provider answered, how fast, how
many tokens it used and what that cost. Writes are best-effort with the same
failure semantics as the audit logger.
"""

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from hostops.db import collections
from hostops.db.documents import DocumentStore, FieldFilter, to_iso, utc_now
from hostops.llm.provider import TokenUsage
from hostops.logging_utils import log_error

logger = logging.getLogger(__name__)

MAX_USER_MESSAGE_CHARS = 1000
MAX_REPLY_CHARS = 2000
TOP_TASK_TYPES = 5

# USD per 1K tokens
PRICING_PER_1K: dict[str, dict[str, float]] = {
    "anthropic": {"input": 0.015, "output": 0.075},
    "openai": {"input": 0.03, "output": 0.06},
}


def estimate_cost(provider: str, usage: TokenUsage | None) -> float:
    """Estimate the USD cost of one call. Unknown providers cost 0."""
    pricing = PRICING_PER_1K.get(provider)
    if pricing is None or usage is None:
        return 0.0
    return (
        usage.prompt_tokens * pricing["input"] / 1000
        + usage.completion_tokens * pricing["output"] / 1000
    )


@dataclass
class UsageLogEntry:
    session_id: str | None
    actor_id: str
    provider: str
    response_time_ms: int
    success: bool
    user_message: str = ""
    reply: str = ""
    actual_provider: str | None = None
    task_type: str | None = None
    routing_reason: str | None = None
    confidence: float | None = None
    token_usage: TokenUsage | None = None
    error: str | None = None
    commands_detected: int = 0
    commands_executed: int = 0
    source: str = "ai_chat"
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def effective_provider(self) -> str:
        return self.actual_provider or self.provider

    def to_document(self, timestamp: str) -> dict[str, Any]:
        usage = None
        if self.token_usage is not None:
            usage = self.token_usage.to_dict()
            usage["cost"] = estimate_cost(self.effective_provider, self.token_usage)
        return {
            "timestamp": timestamp,
            "sessionId": self.session_id,
            "actorId": self.actor_id,
            "userMessage": self.user_message[:MAX_USER_MESSAGE_CHARS],
            "reply": self.reply[:MAX_REPLY_CHARS],
            "provider": self.provider,
            "actualProvider": self.actual_provider,
            "taskType": self.task_type,
            "routingReason": self.routing_reason,
            "confidence": self.confidence,
            "responseTimeMs": self.response_time_ms,
            "tokenUsage": usage,
            "success": self.success,
            "error": self.error,
            "commandsDetected": self.commands_detected,
            "commandsExecuted": self.commands_executed,
            "source": self.source,
            "metadata": self.metadata,
        }


def _provider_of(doc: dict[str, Any]) -> str:
    return doc.get("actualProvider") or doc.get("provider") or "unknown"


def _cost_of(doc: dict[str, Any]) -> float:
    return (doc.get("tokenUsage") or {}).get("cost") or 0.0


@dataclass
class UsageLogger:
    """Writes and summarizes ``ai_usage_logs`` entries."""

    store: DocumentStore
    clock: Callable[[], datetime] = utc_now
    on_error: Callable[[Exception, UsageLogEntry], None] | None = None
    failure_count: int = field(default=0, init=False)

    def log_interaction(self, entry: UsageLogEntry) -> str | None:
        """Append one interaction. Returns the new id, or None if the write failed."""
        try:
            doc_id = self.store.create(collections.AI_USAGE_LOGS, entry.to_document(to_iso(self.clock())))
        except Exception as e:
            self.failure_count += 1
            log_error(
                logger,
                "Usage log write failed",
                provider=entry.effective_provider,
                session_id=entry.session_id,
                error=e,
            )
            if self.on_error is not None:
                self.on_error(e, entry)
            return None

        logger.info(
            "Logged usage %s: %s (%dms)", doc_id, entry.effective_provider, entry.response_time_ms
        )
        return doc_id

    def _load(
        self,
        actor_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> list[dict[str, Any]]:
        filters = []
        if actor_id is not None:
            filters.append(FieldFilter("actorId", "==", actor_id))
        if since is not None:
            filters.append(FieldFilter("timestamp", ">=", to_iso(since)))
        if until is not None:
            filters.append(FieldFilter("timestamp", "<=", to_iso(until)))
        return self.store.query(
            collections.AI_USAGE_LOGS, filters, order_by="timestamp", descending=True
        )

    def get_usage_stats(
        self,
        actor_id: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> dict[str, Any]:
        """Summarize usage.

        Args:
            actor_id: Only this user's interactions
            since: Only interactions at or after this time
            until: Only interactions at or before this time

        Returns:
            Dictionary with total_interactions, provider_usage,
            average_response_time_ms, success_rate, command_execution_rate,
            top_task_types, total_cost and recent_activity (last 10).
        """
        logs = self._load(actor_id, since, until)
        total = len(logs)

        provider_usage = Counter(_provider_of(doc) for doc in logs)
        task_types = Counter(doc["taskType"] for doc in logs if doc.get("taskType"))

        return {
            "total_interactions": total,
            "provider_usage": dict(provider_usage),
            "average_response_time_ms": (
                sum(doc.get("responseTimeMs", 0) for doc in logs) / total if total else 0.0
            ),
            "success_rate": sum(1 for doc in logs if doc.get("success")) / total if total else 0.0,
            "command_execution_rate": (
                sum(1 for doc in logs if (doc.get("commandsExecuted") or 0) > 0) / total
                if total
                else 0.0
            ),
            "top_task_types": [
                {"type": task_type, "count": count}
                for task_type, count in task_types.most_common(TOP_TASK_TYPES)
            ],
            "total_cost": sum(_cost_of(doc) for doc in logs),
            "recent_activity": logs[:10],
        }

    def get_provider_performance(
        self, since: datetime | None = None, until: datetime | None = None
    ) -> list[dict[str, Any]]:
        """Per-provider averages, ordered by provider name."""
        grouped: dict[str, list[dict[str, Any]]] = {}
        for doc in self._load(since=since, until=until):
            grouped.setdefault(_provider_of(doc), []).append(doc)

        performance = []
        for provider in sorted(grouped):
            docs = grouped[provider]
            uses = len(docs)
            confidences = [doc["confidence"] for doc in docs if doc.get("confidence")]
            total_cost = sum(_cost_of(doc) for doc in docs)
            performance.append(
                {
                    "provider": provider,
                    "total_uses": uses,
                    "average_response_time_ms": sum(d.get("responseTimeMs", 0) for d in docs) / uses,
                    "success_rate": sum(1 for d in docs if d.get("success")) / uses,
                    "average_confidence": (
                        sum(confidences) / len(confidences) if confidences else 0.0
                    ),
                    "total_cost": total_cost,
                    "average_cost_per_interaction": total_cost / uses,
                }
            )
        return performance
