"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "lrag_requests_total",
    "Total HTTP requests",
    labelnames=("endpoint", "method", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "lrag_request_latency_seconds",
    "Latency of HTTP requests",
    labelnames=("endpoint", "method"),
    registry=REGISTRY,
)

INGEST_DURATION = Histogram(
    "lrag_ingest_duration_seconds",
    "Ingest pipeline duration",
    labelnames=("format",),
    registry=REGISTRY,
)

SEARCH_LATENCY = Histogram(
    "lrag_search_latency_seconds",
    "Nearest-neighbour search duration",
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "lrag_index_chunks",
    "Number of chunks stored per collection",
    labelnames=("collection",),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "INGEST_DURATION",
    "SEARCH_LATENCY",
    "INDEX_SIZE",
    "metrics_response",
]
