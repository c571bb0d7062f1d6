"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REPORTS_RECEIVED = Counter(
    "vinculum_reports_total",
    "Reports received from drones",
    labelnames=("kind",),
    registry=REGISTRY,
)

ALERTS_DISPATCHED = Counter(
    "vinculum_alerts_total",
    "Alert dispatch outcomes",
    labelnames=("outcome",),
    registry=REGISTRY,
)

ALERT_QUEUE_DEPTH = Gauge(
    "vinculum_alert_queue_depth",
    "Number of alerts waiting to be sent",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REPORTS_RECEIVED",
    "ALERTS_DISPATCHED",
    "ALERT_QUEUE_DEPTH",
    "metrics_response",
]
