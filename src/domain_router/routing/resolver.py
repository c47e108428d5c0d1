"""Resolver/Rewriter stage: customer hostname -> workspace path on the shared origin.

Runs at the earliest interceptable point of a request (viewer request), where
the Host header is read-only. Each request walks the same linear chain with
no retries:

    normalize -> resolve (cache, then lookup store) -> transform

Outcomes:
  - platform host          -> request passed through unchanged
  - fresh positive entry   -> transform with the cached workspace id
  - fresh negative entry   -> 404 not-configured, no store read
  - store miss/inactive    -> negative entry written, 404 (or fallback workspace)
  - store found            -> positive entry written, transform
  - store unavailable      -> 500, nothing cached
  - malformed host         -> 400, nothing cached

Transform prefixes the workspace segment to the path and stores the origin
host in the carrier header for the origin finalizer.
"""

from __future__ import annotations

import asyncio
import re
import time

from ..cache import DomainCache
from ..errors import MalformedRequest, StoreUnavailable, TransformInvariantViolation
from ..models import EdgeRequest, EdgeResponse
from ..observability.logging import get_logger
from ..observability.metrics import (
    CACHE_LOOKUPS_TOTAL,
    RESOLUTIONS_TOTAL,
    STORE_LOOKUP_DURATION_SECONDS,
    STORE_LOOKUPS_TOTAL,
)
from ..protocols import DomainMappingStore
from ..settings import RouterSettings
from . import responses
from .headers import (
    DEBUG_ORIGINAL_URI_HEADER,
    DEBUG_WORKSPACE_HEADER,
    reserved_headers,
    set_header,
    strip_headers,
)
from .rewrite import rewrite_path

logger = get_logger(__name__)

# RFC 1123 labels, at most 253 characters overall. Applied after lowercasing.
_HOSTNAME_RE = re.compile(
    r"^(?=.{1,253}$)[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
    r"(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)*$"
)


def _strip_port(host: str) -> str:
    """Remove port suffix from a host string.

    Handles IPv6 bracket notation (``[::1]:8080``).
    """
    if host.startswith("["):
        bracket_end = host.find("]")
        if bracket_end >= 0:
            return host[1:bracket_end]
        return host.strip("[]")

    colon = host.rfind(":")
    if colon >= 0:
        # Only strip if what follows looks like a port number.
        maybe_port = host[colon + 1:]
        if maybe_port.isdigit():
            return host[:colon]

    return host


def normalize_host(raw: str | None) -> str:
    """Return the lowercase hostname (no port, no trailing dot).

    Raises:
        MalformedRequest: If the host is missing or not a valid hostname.
    """
    if raw is None or not raw.strip():
        raise MalformedRequest("missing host header")
    host = _strip_port(raw.strip()).lower().rstrip(".")
    if not _HOSTNAME_RE.match(host):
        raise MalformedRequest("invalid host header")
    return host


class DomainResolver:
    """Resolve the owning workspace for a request and rewrite it for the origin.

    Args:
        store: Lookup store for domain mappings.
        cache: Per-process domain cache. Built from settings when omitted.
        settings: Router settings. Defaults to local-dev settings.
    """

    def __init__(
        self,
        store: DomainMappingStore,
        cache: DomainCache | None = None,
        settings: RouterSettings | None = None,
    ) -> None:
        self._settings = settings or RouterSettings()
        self._store = store
        self._cache = cache if cache is not None else DomainCache(
            ttl_seconds=self._settings.cache_ttl_seconds,
        )
        self._segment_pattern = re.compile(self._settings.workspace_segment_pattern)
        self._reserved = reserved_headers(self._settings.carrier_header)

    @property
    def cache(self) -> DomainCache:
        return self._cache

    # ── Public API ────────────────────────────────────────────────

    async def resolve(self, request: EdgeRequest) -> EdgeRequest | EdgeResponse:
        """Run the viewer-request stage on ``request``.

        Returns a rewritten copy of the request, or a response that must be
        sent to the client instead of contacting the origin. Never raises.
        """
        try:
            return await self._resolve(request)
        except Exception:
            logger.exception("resolver_error", path=request.path)
            RESOLUTIONS_TOTAL.labels(outcome="error").inc()
            return responses.internal_error()

    def is_platform_host(self, host: str) -> bool:
        """True for the platform's own default hostnames (already direct)."""
        return any(
            host == suffix or host.endswith(f".{suffix}")
            for suffix in self._settings.platform_host_suffixes
        )

    # ── Stages ────────────────────────────────────────────────────

    async def _resolve(self, request: EdgeRequest) -> EdgeRequest | EdgeResponse:
        routed = request.copy()

        # Client-supplied carrier/diagnostic values must never survive.
        stripped = strip_headers(routed, self._reserved)
        if stripped:
            logger.warning("reserved_headers_stripped", headers=stripped)

        try:
            host = normalize_host(routed.host)
        except MalformedRequest as exc:
            logger.warning("malformed_request", reason=str(exc))
            RESOLUTIONS_TOTAL.labels(outcome="malformed").inc()
            return responses.malformed_request()

        if self.is_platform_host(host):
            logger.debug("platform_host_passthrough", host=host)
            RESOLUTIONS_TOTAL.labels(outcome="passthrough").inc()
            return routed

        try:
            workspace_id = await self._lookup_workspace(host)
        except StoreUnavailable as exc:
            logger.error("store_unavailable", host=host, reason=exc.reason)
            RESOLUTIONS_TOTAL.labels(outcome="store_unavailable").inc()
            return responses.lookup_error()

        outcome = "routed"
        if workspace_id is None:
            if self._settings.fallback_workspace_id is None:
                logger.info("domain_not_configured", host=host)
                RESOLUTIONS_TOTAL.labels(outcome="not_configured").inc()
                return responses.not_configured(host)
            workspace_id = self._settings.fallback_workspace_id
            outcome = "fallback"

        return self._transform(routed, host, workspace_id, outcome)

    async def _lookup_workspace(self, host: str) -> str | None:
        """Return the workspace id for ``host`` or None if it has no active mapping."""
        cached = self._cache.get(host)
        if cached.found and cached.fresh:
            CACHE_LOOKUPS_TOTAL.labels(
                result="hit" if cached.value is not None else "negative_hit",
            ).inc()
            return cached.value
        CACHE_LOOKUPS_TOTAL.labels(result="stale" if cached.found else "miss").inc()

        start = time.perf_counter()
        try:
            mapping = await asyncio.wait_for(
                self._store.lookup(host),
                timeout=self._settings.store_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            STORE_LOOKUPS_TOTAL.labels(result="unavailable").inc()
            raise StoreUnavailable(host, "timeout") from exc
        except StoreUnavailable:
            STORE_LOOKUPS_TOTAL.labels(result="unavailable").inc()
            raise
        finally:
            STORE_LOOKUP_DURATION_SECONDS.observe(time.perf_counter() - start)

        if mapping is None:
            STORE_LOOKUPS_TOTAL.labels(result="not_found").inc()
            self._cache.put(host, None)
            return None

        STORE_LOOKUPS_TOTAL.labels(result="found").inc()
        self._cache.put(host, mapping.workspace_id)
        logger.info("mapping_resolved", host=host, workspace_id=mapping.workspace_id)
        return mapping.workspace_id

    def _transform(
        self,
        routed: EdgeRequest,
        host: str,
        workspace_id: str,
        outcome: str,
    ) -> EdgeRequest:
        original_path = routed.path
        try:
            new_path = rewrite_path(
                original_path,
                workspace_id,
                style=self._settings.workspace_path_style,
                segment_pattern=self._segment_pattern,
            )
        except TransformInvariantViolation as exc:
            # Fail open: forward without rewrite or carrier.
            logger.warning(
                "transform_fallback",
                host=host,
                workspace_id=workspace_id,
                path=original_path,
                reason=str(exc),
            )
            RESOLUTIONS_TOTAL.labels(outcome="transform_fallback").inc()
            return routed

        routed.path = new_path
        set_header(routed, self._settings.carrier_header, self._settings.origin_host)
        if self._settings.diagnostic_headers:
            set_header(routed, DEBUG_WORKSPACE_HEADER, workspace_id)
            set_header(routed, DEBUG_ORIGINAL_URI_HEADER, original_path)

        logger.info(
            "path_transformed",
            host=host,
            workspace_id=workspace_id,
            original_path=original_path,
            path=new_path,
            outcome=outcome,
        )
        RESOLUTIONS_TOTAL.labels(outcome=outcome).inc()
        return routed
