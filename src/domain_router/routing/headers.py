"""Carrier and diagnostic header contract between the two routing stages.

The resolver cannot change the outgoing Host header, so it stores the origin
host in a reserved carrier header that the origin finalizer consumes:

  - ``x-custom-host`` (carrier) is set only by the resolver and always
    removed by the finalizer; any client-supplied value is stripped first.
  - ``x-debug-workspace`` / ``x-debug-original-uri`` are additive
    diagnostics for the rendering layer; client-supplied values are
    stripped so they can only ever reflect the routing decision.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from ..models import EdgeRequest

CARRIER_HEADER = "x-custom-host"
DEBUG_WORKSPACE_HEADER = "x-debug-workspace"
DEBUG_ORIGINAL_URI_HEADER = "x-debug-original-uri"

DIAGNOSTIC_HEADERS: frozenset[str] = frozenset({
    DEBUG_WORKSPACE_HEADER,
    DEBUG_ORIGINAL_URI_HEADER,
})

# Headers that should NOT be forwarded (hop-by-hop, RFC 7230 section 6.1).
HOP_BY_HOP_HEADERS: frozenset[str] = frozenset({
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
})


def reserved_headers(carrier_header: str = CARRIER_HEADER) -> frozenset[str]:
    """Headers a client must never be able to set on an inbound request."""
    return DIAGNOSTIC_HEADERS | {carrier_header.lower()}


def normalize_header_map(headers: Mapping[str, str]) -> dict[str, str]:
    """Lowercase header names. On duplicate names the last one wins."""
    return {key.lower(): value for key, value in headers.items()}


def set_header(request: EdgeRequest, name: str, value: str) -> None:
    request.headers[name.lower()] = value


def remove_header(request: EdgeRequest, name: str) -> str | None:
    return request.headers.pop(name.lower(), None)


def strip_headers(request: EdgeRequest, names: Iterable[str]) -> list[str]:
    """Remove ``names`` (case-insensitive) and return the ones that were present."""
    removed: list[str] = []
    for name in names:
        if request.headers.pop(name.lower(), None) is not None:
            removed.append(name.lower())
    return sorted(removed)


def without_hop_by_hop(headers: Mapping[str, str]) -> dict[str, str]:
    return {
        key: value
        for key, value in headers.items()
        if key.lower() not in HOP_BY_HOP_HEADERS
    }
