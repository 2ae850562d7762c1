"""
rabbit_id.tier0_core.metrics
─────────────────────────────
Counters for generator activity, exported via a Prometheus /metrics endpoint.
Every generator binds its own label children once at construction so the
hot path only pays for an ``inc()``.

Minimal stack: prometheus-client
Configure via: RABBIT_METRICS_ENABLED=true|false
               RABBIT_METRICS_PORT (default: 8001)
               (environment or .env, read through get_config())
"""
from __future__ import annotations

import threading
from typing import Callable

from prometheus_client import Counter, start_http_server

from rabbit_id.tier0_core.config import get_config

_counters: dict[str, Counter] = {}
_lock = threading.Lock()


class _NoopMetric:
    """Stand-in child used when metrics are disabled."""

    def inc(self, amount: float = 1) -> None:
        return None


NOOP = _NoopMetric()


def metrics_enabled() -> bool:
    return get_config().metrics_enabled


def counter(name: str, description: str, labels: list[str] | None = None) -> Callable:
    """
    Create (or retrieve) a counter.

    Usage:
        exhausted = counter("rabbit_sequence_exhausted_total", "...", ["datacenter_id"])
        exhausted(datacenter_id="1").inc()
    """
    with _lock:
        c = _counters.get(name)
        if c is None:
            c = Counter(name, description, labels or [])
            _counters[name] = c

    def _counter(**label_values: str) -> Counter | _NoopMetric:
        if not metrics_enabled():
            return NOOP
        return c.labels(**label_values) if label_values else c

    return _counter


# ── Generator metrics ─────────────────────────────────────────────────────────

_IDENTITY_LABELS = ["datacenter_id", "worker_id"]

ids_generated = counter(
    "rabbit_ids_generated_total",
    "Snowflake ids issued",
    _IDENTITY_LABELS,
)
sequence_exhausted = counter(
    "rabbit_sequence_exhausted_total",
    "Times a generator used all 4096 sequence values in one millisecond",
    _IDENTITY_LABELS,
)
clock_regressions = counter(
    "rabbit_clock_regressions_total",
    "Times the wall clock was observed moving backwards",
    _IDENTITY_LABELS + ["policy"],
)


def start_metrics_server(port: int | None = None) -> None:
    """
    Start the Prometheus HTTP metrics server on a dedicated port.
    Call once at application startup.
    """
    port = port or get_config().metrics_port
    start_http_server(port)


__all__ = [
    "counter",
    "metrics_enabled",
    "ids_generated",
    "sequence_exhausted",
    "clock_regressions",
    "start_metrics_server",
]
