"""Tests for observability metrics."""

import pytest

from hostops.metrics import MetricsCollector, get_metrics_collector, is_metrics_enabled


@pytest.fixture
def reset_metrics():
    """Reset metrics before and after each test."""
    collector = get_metrics_collector()
    collector.reset()
    yield
    collector.reset()


def test_metrics_collector_record_action(reset_metrics):
    """Test that MetricsCollector records action metrics correctly."""
    collector = get_metrics_collector()

    collector.record_action("assign_staff", "completed", 150.5)
    collector.record_action("approve_booking", "pending", 20.3)
    collector.record_action("assign_staff", "completed", 175.2)
    collector.record_action("delete_job", "rejected", 12.0)

    snapshot = collector.get_snapshot()

    assert snapshot["action_counts"] == {"assign_staff": 2, "approve_booking": 1, "delete_job": 1}
    assert snapshot["status_counts"] == {"completed": 2, "pending": 1, "rejected": 1}
    assert snapshot["command_latency_ms"]["count"] == 4
    assert snapshot["command_latency_ms"]["p50"] is not None


def test_metrics_collector_record_confirmation(reset_metrics):
    """Test that MetricsCollector records confirmation outcomes."""
    collector = get_metrics_collector()

    collector.record_confirmation("ok")
    collector.record_confirmation("ok")
    collector.record_confirmation("not_found")

    assert collector.get_snapshot()["confirm_outcomes"] == {"ok": 2, "not_found": 1}


def test_metrics_collector_record_provider_call(reset_metrics):
    """Test that provider calls are counted per provider."""
    collector = get_metrics_collector()

    collector.record_provider_call("anthropic")
    collector.record_provider_call("openai")
    collector.record_provider_call("openai")

    assert collector.get_snapshot()["provider_calls"] == {"anthropic": 1, "openai": 2}


def test_metrics_collector_percentiles():
    """Test latency percentile calculation."""
    collector = MetricsCollector()

    for latency in [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]:
        collector.record_action("notify_staff", "completed", latency)

    snapshot = collector.get_snapshot()

    assert 40 <= snapshot["command_latency_ms"]["p50"] <= 60
    assert 85 <= snapshot["command_latency_ms"]["p95"] <= 100


def test_empty_snapshot():
    """Test that an empty collector has no percentiles."""
    snapshot = MetricsCollector().get_snapshot()

    assert snapshot["command_latency_ms"] == {"p50": None, "p95": None, "count": 0}
    assert snapshot["action_counts"] == {}


def test_reset(reset_metrics):
    collector = get_metrics_collector()
    collector.record_action("assign_staff", "completed", 1.0)
    collector.record_provider_call("openai")

    collector.reset()

    snapshot = collector.get_snapshot()
    assert snapshot["action_counts"] == {}
    assert snapshot["provider_calls"] == {}
    assert snapshot["command_latency_ms"]["count"] == 0


@pytest.mark.parametrize(
    "value,expected",
    [("true", True), ("1", True), ("YES", True), ("false", False), ("", False)],
)
def test_is_metrics_enabled(monkeypatch, value, expected):
    """Test the HOSTOPS_ENABLE_METRICS switch."""
    monkeypatch.setenv("HOSTOPS_ENABLE_METRICS", value)

    assert is_metrics_enabled() is expected


def test_metrics_disabled_by_default(monkeypatch):
    monkeypatch.delenv("HOSTOPS_ENABLE_METRICS", raising=False)

    assert is_metrics_enabled() is False
