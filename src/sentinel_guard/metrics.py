"""Prometheus collectors exposed by the client."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

HEARTBEAT_COUNTER = Counter(
    "sentinel_guard_heartbeats_total",
    "Heartbeat send attempts by outcome",
    ["outcome"],
)
HEARTBEAT_LATENCY = Histogram(
    "sentinel_guard_heartbeat_latency_seconds",
    "Round-trip time of heartbeat deliveries",
)
REQUEST_RETRIES = Counter(
    "sentinel_guard_request_retries_total",
    "HTTP requests retried after a transient failure",
    ["method"],
)
MONITORING_ACTIVE = Gauge(
    "sentinel_guard_monitoring_active",
    "Number of heartbeat schedulers currently running",
)

__all__ = ["HEARTBEAT_COUNTER", "HEARTBEAT_LATENCY", "REQUEST_RETRIES", "MONITORING_ACTIVE"]
