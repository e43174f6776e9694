"""Tests for model usage logging and statistics."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from hostops.db import DocumentStore, StoreError
from hostops.llm.provider import TokenUsage
from hostops.usage import (
    MAX_REPLY_CHARS,
    MAX_USER_MESSAGE_CHARS,
    UsageLogEntry,
    UsageLogger,
    estimate_cost,
)


class SteppingClock:
    def __init__(self, start) -> None:
        self.now = start

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def usage_logger(store, now) -> UsageLogger:
    return UsageLogger(store, clock=SteppingClock(now))


def _entry(**overrides) -> UsageLogEntry:
    fields = {
        "session_id": "session-1",
        "actor_id": "admin-1",
        "provider": "anthropic",
        "response_time_ms": 100,
        "success": True,
    }
    fields.update(overrides)
    return UsageLogEntry(**fields)


class TestEstimateCost:
    def test_anthropic_pricing(self) -> None:
        usage = TokenUsage(prompt_tokens=1000, completion_tokens=1000)
        assert estimate_cost("anthropic", usage) == pytest.approx(0.09)

    def test_openai_pricing(self) -> None:
        usage = TokenUsage(prompt_tokens=2000, completion_tokens=500)
        assert estimate_cost("openai", usage) == pytest.approx(0.09)

    def test_unknown_provider_or_usage_is_free(self) -> None:
        assert estimate_cost("direct_command", TokenUsage(10, 10)) == 0.0
        assert estimate_cost("openai", None) == 0.0


class TestLogInteraction:
    def test_document_fields(self, usage_logger, store) -> None:
        entry = _entry(
            provider="anthropic",
            actual_provider="openai",
            user_message="x" * (MAX_USER_MESSAGE_CHARS + 50),
            reply="y" * (MAX_REPLY_CHARS + 50),
            task_type="analysis",
            confidence=0.9,
            token_usage=TokenUsage(prompt_tokens=1000, completion_tokens=0),
            commands_detected=2,
            commands_executed=1,
        )

        doc_id = usage_logger.log_interaction(entry)

        doc = store.get("ai_usage_logs", doc_id)
        assert len(doc["userMessage"]) == MAX_USER_MESSAGE_CHARS
        assert len(doc["reply"]) == MAX_REPLY_CHARS
        assert doc["provider"] == "anthropic"
        assert doc["actualProvider"] == "openai"
        # Cost follows the provider that actually answered
        assert doc["tokenUsage"]["cost"] == pytest.approx(0.03)
        assert doc["tokenUsage"]["total_tokens"] == 1000
        assert doc["commandsDetected"] == 2
        assert doc["commandsExecuted"] == 1
        assert doc["source"] == "ai_chat"

    def test_write_failure_is_swallowed(self) -> None:
        store = MagicMock(spec=DocumentStore)
        store.create.side_effect = StoreError("disk full")
        failures = []
        usage_logger = UsageLogger(store, on_error=lambda e, entry: failures.append(entry))

        assert usage_logger.log_interaction(_entry()) is None
        assert usage_logger.failure_count == 1
        assert failures[0].provider == "anthropic"


class TestUsageStats:
    @pytest.fixture
    def populated(self, usage_logger) -> UsageLogger:
        usage_logger.log_interaction(
            _entry(
                task_type="analysis",
                confidence=0.9,
                token_usage=TokenUsage(prompt_tokens=1000, completion_tokens=1000),
            )
        )
        usage_logger.log_interaction(
            _entry(
                actual_provider="openai",
                response_time_ms=300,
                task_type="analysis",
                confidence=0.8,
                token_usage=TokenUsage(prompt_tokens=1000, completion_tokens=0),
                commands_executed=1,
            )
        )
        usage_logger.log_interaction(
            _entry(
                actor_id="admin-2",
                provider="openai",
                response_time_ms=200,
                success=False,
                task_type="creative",
                error="connectivity error: timeout",
            )
        )
        return usage_logger

    def test_summary(self, populated) -> None:
        stats = populated.get_usage_stats()

        assert stats["total_interactions"] == 3
        assert stats["provider_usage"] == {"anthropic": 1, "openai": 2}
        assert stats["average_response_time_ms"] == pytest.approx(200)
        assert stats["success_rate"] == pytest.approx(2 / 3)
        assert stats["command_execution_rate"] == pytest.approx(1 / 3)
        assert stats["top_task_types"] == [
            {"type": "analysis", "count": 2},
            {"type": "creative", "count": 1},
        ]
        assert stats["total_cost"] == pytest.approx(0.12)
        assert [doc["actorId"] for doc in stats["recent_activity"]] == [
            "admin-2",
            "admin-1",
            "admin-1",
        ]

    def test_filters(self, populated, now) -> None:
        assert populated.get_usage_stats(actor_id="admin-2")["total_interactions"] == 1
        assert populated.get_usage_stats(since=now + timedelta(seconds=2))["total_interactions"] == 2
        assert populated.get_usage_stats(until=now + timedelta(seconds=1))["total_interactions"] == 1

    def test_empty(self, usage_logger) -> None:
        stats = usage_logger.get_usage_stats()

        assert stats["total_interactions"] == 0
        assert stats["success_rate"] == 0.0
        assert stats["average_response_time_ms"] == 0.0
        assert stats["top_task_types"] == []
        assert stats["recent_activity"] == []

    def test_provider_performance(self, populated) -> None:
        anthropic, openai = populated.get_provider_performance()

        assert anthropic["provider"] == "anthropic"
        assert anthropic["total_uses"] == 1
        assert anthropic["average_confidence"] == pytest.approx(0.9)
        assert anthropic["total_cost"] == pytest.approx(0.09)

        assert openai["provider"] == "openai"
        assert openai["total_uses"] == 2
        assert openai["average_response_time_ms"] == pytest.approx(250)
        assert openai["success_rate"] == pytest.approx(0.5)
        assert openai["average_confidence"] == pytest.approx(0.8)
        assert openai["average_cost_per_interaction"] == pytest.approx(0.015)
