"""Edge router FastAPI application factory.

The create_app() factory is the single entry point for building the gateway
ASGI application. It wires middleware (request-ID, metrics, logging, edge
routing), the forwarding route, and injects the lookup store via dependency
injection.

Usage:
    # Local development (in-memory mapping store)
    from domain_router.main import create_app
    app = create_app()

    # Non-local (Supabase store built from settings)
    settings = RouterSettings.from_env()
    app = create_app(settings)

    # Testing (full DI control)
    app = create_app(settings, store=fake_store, http_client=mock_client)
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from .cache import DomainCache
from .db.mapping_store import build_mapping_store
from .gateway import ADMIN_PATH_PREFIX, EdgeRoutingMiddleware, OriginForwarder
from .inmemory import InMemoryDomainMappingStore
from .observability.logging import configure_logging, get_logger
from .observability.metrics import metrics_text
from .observability.middleware import (
    MetricsMiddleware,
    RequestIdMiddleware,
    RequestLoggingMiddleware,
)
from .protocols import DomainMappingStore
from .routing.finalizer import OriginFinalizer
from .routing.resolver import DomainResolver
from .settings import RouterSettings

logger = get_logger(__name__)

FORWARDED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _build_store(settings: RouterSettings) -> DomainMappingStore:
    if settings.is_local and not settings.supabase_url:
        return InMemoryDomainMappingStore()
    return build_mapping_store(settings)


def create_app(
    settings: RouterSettings | None = None,
    *,
    store: DomainMappingStore | None = None,
    cache: DomainCache | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Create a configured edge router gateway application.

    Args:
        settings: Router settings. Defaults to local-dev settings.
        store: Lookup store override. When None, local mode uses the
            in-memory store and non-local mode builds the Supabase store.
        cache: Domain cache override (tests pin the clock through it).
        http_client: Client used to reach the origin.

    Returns:
        Configured FastAPI application ready for uvicorn.run().

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = RouterSettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Edge router settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    configure_logging(
        service="gateway",
        quiet_loggers=("httpx", "httpcore", "uvicorn.access"),
    )

    if store is None:
        store = _build_store(settings)
    if cache is None:
        cache = DomainCache(ttl_seconds=settings.cache_ttl_seconds)
    resolver = DomainResolver(store, cache, settings)
    finalizer = OriginFinalizer(settings.carrier_header)
    forwarder = OriginForwarder(settings, http_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "edge_router_startup",
            environment=settings.environment,
            origin_host=settings.origin_host,
        )
        yield
        await forwarder.aclose()
        logger.info("edge_router_shutdown")

    app = FastAPI(
        title="Custom Domain Edge Router",
        description="Routes customer hostnames to workspaces on a shared origin",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.cache = cache
    app.state.forwarder = forwarder

    # ── Middleware stack (applied in reverse order) ──────────────
    # Order of execution: RequestID -> Metrics -> Logging -> EdgeRouting -> route

    app.add_middleware(EdgeRoutingMiddleware, resolver=resolver, finalizer=finalizer)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIdMiddleware)

    # ── Routes ──────────────────────────────────────────────────

    @app.get(f"{ADMIN_PATH_PREFIX}health")
    async def health():
        return {
            "status": "ok",
            "environment": settings.environment,
            "cached_hosts": len(cache),
        }

    @app.get(f"{ADMIN_PATH_PREFIX}metrics")
    async def metrics():
        body, content_type = metrics_text()
        return Response(content=body, media_type=content_type)

    @app.api_route("/{path:path}", methods=FORWARDED_METHODS, include_in_schema=False)
    async def forward_to_origin(path: str, request: Request) -> Response:
        routed = getattr(request.state, "routed_request", None)
        if routed is None:
            # Unknown path under the admin prefix; never routed.
            return JSONResponse(
                status_code=404,
                content={"code": "NOT_FOUND", "message": f"No route for /{path}"},
            )
        body = await request.body()
        return await forwarder.forward(routed, body)

    return app


# For uvicorn, use --factory flag:
#   uvicorn domain_router.main:create_app --factory
# This avoids executing create_app() at import time.
