"""In-process pipeline metrics.

Counts per action tag, per outcome and per provider, plus command latency
percentiles. State is per worker process; nothing is exported unless
HOSTOPS_ENABLE_METRICS is set.
"""

import os
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Any


def _percentile(sorted_values: list[float], fraction: float) -> float | None:
    """Nearest-rank percentile over an ascending list."""
    if not sorted_values:
        return None
    index = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return sorted_values[index]


@dataclass
class MetricsCollector:
    """Thread-safe counters and latency samples."""

    action_counts: Counter = field(default_factory=Counter)
    # completed, failed, rejected, pending
    status_counts: Counter = field(default_factory=Counter)
    # ok, not_found, rejected, error, cancelled
    confirm_outcomes: Counter = field(default_factory=Counter)
    provider_calls: Counter = field(default_factory=Counter)
    command_latencies: list[float] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_action(self, action_tag: str, status: str, latency_ms: float) -> None:
        """Count one action leaving the pipeline with the given outcome."""
        with self._lock:
            self.action_counts[action_tag] += 1
            self.status_counts[status] += 1
            self.command_latencies.append(latency_ms)

    def record_confirmation(self, outcome: str) -> None:
        with self._lock:
            self.confirm_outcomes[outcome] += 1

    def record_provider_call(self, provider: str) -> None:
        with self._lock:
            self.provider_calls[provider] += 1

    def get_snapshot(self) -> dict[str, Any]:
        """Copy of every counter plus p50/p95 command latency."""
        with self._lock:
            latencies = sorted(self.command_latencies)
            return {
                "action_counts": dict(self.action_counts),
                "status_counts": dict(self.status_counts),
                "confirm_outcomes": dict(self.confirm_outcomes),
                "provider_calls": dict(self.provider_calls),
                "command_latency_ms": {
                    "p50": _percentile(latencies, 0.5),
                    "p95": _percentile(latencies, 0.95),
                    "count": len(latencies),
                },
            }

    def reset(self) -> None:
        with self._lock:
            for counter in (
                self.action_counts,
                self.status_counts,
                self.confirm_outcomes,
                self.provider_calls,
            ):
                counter.clear()
            self.command_latencies.clear()


_metrics_collector: MetricsCollector | None = None
_metrics_lock = threading.Lock()


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector, created on first use."""
    global _metrics_collector
    with _metrics_lock:
        if _metrics_collector is None:
            _metrics_collector = MetricsCollector()
        return _metrics_collector


def is_metrics_enabled() -> bool:
    """True when HOSTOPS_ENABLE_METRICS is "true", "1" or "yes"."""
    return os.getenv("HOSTOPS_ENABLE_METRICS", "false").lower() in ("true", "1", "yes")
