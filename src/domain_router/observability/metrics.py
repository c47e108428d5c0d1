"""Prometheus metrics for the edge router.

Metric naming follows Prometheus conventions. Label values are drawn from
small fixed sets (outcomes, cache results), never from hostnames.

Usage::

    from domain_router.observability.metrics import RESOLUTIONS_TOTAL

    RESOLUTIONS_TOTAL.labels(outcome="routed").inc()
"""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

# ---------------------------------------------------------------------------
# HTTP request metrics (gateway)
# ---------------------------------------------------------------------------

HTTP_REQUESTS_TOTAL = Counter(
    "http_server_requests_total",
    "Total HTTP requests by method and status code.",
    labelnames=["method", "status"],
    registry=REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_server_request_duration_seconds",
    "HTTP request latency in seconds.",
    labelnames=["method"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

HTTP_REQUESTS_IN_FLIGHT = Gauge(
    "http_server_requests_in_flight",
    "Number of HTTP requests currently being processed.",
    registry=REGISTRY,
)

# ---------------------------------------------------------------------------
# Routing decision metrics
# ---------------------------------------------------------------------------

RESOLUTIONS_TOTAL = Counter(
    "edge_router_resolutions_total",
    "Routing decisions by outcome (routed, passthrough, fallback, "
    "not_configured, malformed, store_unavailable, transform_fallback, error).",
    labelnames=["outcome"],
    registry=REGISTRY,
)

CACHE_LOOKUPS_TOTAL = Counter(
    "edge_router_cache_lookups_total",
    "Domain cache reads by result (hit, negative_hit, miss, stale).",
    labelnames=["result"],
    registry=REGISTRY,
)

STORE_LOOKUPS_TOTAL = Counter(
    "edge_router_store_lookups_total",
    "Lookup store reads by result (found, not_found, unavailable).",
    labelnames=["result"],
    registry=REGISTRY,
)

STORE_LOOKUP_DURATION_SECONDS = Histogram(
    "edge_router_store_lookup_duration_seconds",
    "Lookup store read latency in seconds.",
    buckets=(0.001, 0.0025, 0.005, 0.01, 0.02, 0.03, 0.05, 0.1, 0.25),
    registry=REGISTRY,
)

ORIGIN_FINALIZATIONS_TOTAL = Counter(
    "edge_router_origin_finalizations_total",
    "Origin finalizer runs by result (host_substituted, unchanged, error).",
    labelnames=["result"],
    registry=REGISTRY,
)


def metrics_text() -> tuple[bytes, str]:
    """Generate Prometheus exposition text and content-type header."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
