"""Lambda@Edge entry points for the two routing stages.

Attach ``viewer_request_handler`` to the viewer-request trigger and
``origin_request_handler`` to the origin-request trigger of the same
distribution behavior.

Everything that must outlive one invocation lives on the module-level
``EdgeRuntime``: the domain cache, one event loop, and the Supabase store
with its ``httpx.AsyncClient``. Reusing the loop keeps the client's pooled
connection to PostgREST alive between invocations, so a cache miss does not
pay a fresh TCP/TLS handshake inside the store timeout.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Mapping, TypeVar

import httpx

from ..cache import DomainCache
from ..db.mapping_store import build_mapping_store
from ..errors import MalformedRequest
from ..inmemory import InMemoryDomainMappingStore
from ..models import EdgeRequest, EdgeResponse
from ..observability.logging import bind_request_id, configure_logging, get_logger
from ..protocols import DomainMappingStore
from ..routing import responses
from ..routing.finalizer import OriginFinalizer
from ..routing.resolver import DomainResolver
from ..settings import RouterSettings
from . import cloudfront
from .config import load_edge_settings

logger = get_logger(__name__)

T = TypeVar('T')


class EdgeRuntime:
    """State shared by every invocation of one runtime instance.

    Args:
        settings: Router settings.
        store: Fixed lookup store. When None, a Supabase store is built from
            ``settings`` on ``http_client``.
        http_client: Client for the Supabase store. Created (and owned) when
            omitted.
    """

    def __init__(
        self,
        settings: RouterSettings,
        store: DomainMappingStore | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings
        self.cache = DomainCache(ttl_seconds=settings.cache_ttl_seconds)
        self.finalizer = OriginFinalizer(settings.carrier_header)
        self.http_client: httpx.AsyncClient | None = None
        self._owns_client = False
        self._loop = asyncio.new_event_loop()

        if store is None:
            if http_client is None:
                http_client = httpx.AsyncClient()
                self._owns_client = True
            self.http_client = http_client
            store = build_mapping_store(settings, http_client)
        self.store = store
        self.resolver = DomainResolver(store, self.cache, settings)

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run ``coro`` to completion on the runtime's long-lived loop."""
        return self._loop.run_until_complete(coro)

    def resolve(self, request: EdgeRequest) -> EdgeRequest | EdgeResponse:
        return self.run(self.resolver.resolve(request))

    def close(self) -> None:
        if self._loop.is_closed():
            return
        if self._owns_client and self.http_client is not None:
            self.run(self.http_client.aclose())
        self._loop.close()


_runtime: EdgeRuntime | None = None


def configure(
    settings: RouterSettings | None = None,
    *,
    store: DomainMappingStore | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> EdgeRuntime:
    """(Re)build the module runtime. Discards the current cache.

    Settings default to the bundled ``domain_router.json`` (see
    ``edge.config``), falling back to the process environment off Lambda.

    Raises:
        ValueError: If settings validation fails, or local defaults would
            be used on a Lambda runtime.
    """
    global _runtime
    configure_logging(service='edge')
    if settings is None:
        settings = load_edge_settings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Edge router settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    if store is None and settings.is_local and not settings.supabase_url:
        store = InMemoryDomainMappingStore()

    if _runtime is not None:
        _runtime.close()
    _runtime = EdgeRuntime(settings, store, http_client)
    logger.info(
        "edge_runtime_configured",
        environment=settings.environment,
        origin_host=settings.origin_host,
        store=type(_runtime.store).__name__,
    )
    return _runtime


def get_runtime() -> EdgeRuntime:
    if _runtime is None:
        return configure()
    return _runtime


def _bind_request_id(event: Mapping[str, Any], context: Any) -> None:
    request_id = cloudfront.extract_request_id(event)
    if request_id is None:
        request_id = getattr(context, 'aws_request_id', None)
    bind_request_id(request_id)


def viewer_request_handler(event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
    """Resolve the workspace and rewrite the request (viewer-request trigger)."""
    runtime = get_runtime()
    _bind_request_id(event, context)
    try:
        cf_request = cloudfront.extract_request(event)
        edge_request = cloudfront.request_from_cloudfront(cf_request)
    except MalformedRequest:
        logger.error("invalid_event_structure", stage="viewer-request")
        return cloudfront.response_to_cloudfront(responses.internal_error())

    result = runtime.resolve(edge_request)
    if isinstance(result, EdgeResponse):
        return cloudfront.response_to_cloudfront(result)
    return cloudfront.request_to_cloudfront(result, cf_request)


def origin_request_handler(event: Mapping[str, Any], context: Any = None) -> dict[str, Any]:
    """Apply the carrier Host substitution (origin-request trigger)."""
    runtime = get_runtime()
    _bind_request_id(event, context)
    try:
        cf_request = cloudfront.extract_request(event)
        edge_request = cloudfront.request_from_cloudfront(cf_request)
    except MalformedRequest:
        logger.error("invalid_event_structure", stage="origin-request")
        return cloudfront.response_to_cloudfront(responses.internal_error())

    result = runtime.finalizer.finalize(edge_request)
    if isinstance(result, EdgeResponse):
        return cloudfront.response_to_cloudfront(result)
    return cloudfront.request_to_cloudfront(result, cf_request)
