"""Observability infrastructure for the edge router.

Provides structured logging, Prometheus metrics, and request-ID
correlation middleware.

Quick start::

    from domain_router.observability import configure_logging, get_logger
    from domain_router.observability.middleware import (
        MetricsMiddleware,
        RequestIdMiddleware,
        RequestLoggingMiddleware,
    )

    configure_logging()
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIdMiddleware)
"""

from .logging import bind_request_id, configure_logging, get_logger, request_id_ctx
from .metrics import metrics_text

__all__ = [
    "bind_request_id",
    "configure_logging",
    "get_logger",
    "metrics_text",
    "request_id_ctx",
]
