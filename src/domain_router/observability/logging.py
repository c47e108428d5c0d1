"""Structured logging for the edge router.

One JSON object per line on stdout, which both CloudWatch (edge functions)
and the container runtime (ASGI gateway) ingest as-is. Every event carries
``service`` (``edge`` or ``gateway``) and, when one is bound, the
``request_id`` of the request being routed:

  - edge functions bind the CloudFront ``requestId`` (falling back to the
    Lambda ``aws_request_id``) via ``bind_request_id``;
  - the gateway's ``RequestIdMiddleware`` binds ``X-Request-ID``.

Request headers are never logged except for the host; values under
credential-like keys are masked before rendering.
"""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar, Token

import structlog

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_SECRET_KEYS = frozenset({"apikey", "authorization", "cookie", "service_role_key"})
_MASK = "[redacted]"

_configured = False


def bind_request_id(request_id: str | None) -> Token:
    return request_id_ctx.set(request_id)


def _add_request_id(logger, method_name: str, event_dict: dict) -> dict:
    rid = request_id_ctx.get()
    if rid is not None:
        event_dict["request_id"] = rid
    return event_dict


def _mask_secrets(logger, method_name: str, event_dict: dict) -> dict:
    for key in _SECRET_KEYS.intersection(event_dict):
        event_dict[key] = _MASK
    return event_dict


def configure_logging(
    *,
    service: str = "gateway",
    level: str | None = None,
    json_output: bool | None = None,
    quiet_loggers: tuple[str, ...] = ("httpx", "httpcore"),
) -> None:
    """Configure structlog once per process; later calls are no-ops.

    ``LOG_LEVEL`` and ``LOG_FORMAT`` (``json`` or ``console``) apply when
    the arguments are omitted.
    """
    global _configured
    if _configured:
        return
    _configured = True

    level = level or os.environ.get("LOG_LEVEL", "INFO")
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "json") == "json"

    def add_service(logger, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service)
        return event_dict

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            add_service,
            _add_request_id,
            _mask_secrets,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in quiet_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
