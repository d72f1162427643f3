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

FILES_INDEXED = Counter(
    "ctxo_files_indexed_total",
    "Files indexed, by outcome",
    labelnames=("outcome",),
    registry=REGISTRY,
)

INDEXING_DURATION = Histogram(
    "ctxo_indexing_duration_seconds",
    "Indexing pass duration",
    labelnames=("mode",),
    registry=REGISTRY,
)

INDEX_SIZE = Gauge(
    "ctxo_indexed_files",
    "Number of files currently in the index",
    registry=REGISTRY,
)

COMPRESSIONS = Counter(
    "ctxo_compressions_total",
    "Content compressions, by algorithm",
    labelnames=("algorithm",),
    registry=REGISTRY,
)

PACKAGE_TOKENS = Histogram(
    "ctxo_package_tokens",
    "Estimated tokens of generated context packages",
    labelnames=("type",),
    buckets=(250, 500, 1000, 2000, 4000, 8000, 16000, 32000),
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "FILES_INDEXED",
    "INDEXING_DURATION",
    "INDEX_SIZE",
    "COMPRESSIONS",
    "PACKAGE_TOKENS",
    "metrics_response",
]
