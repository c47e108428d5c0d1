"""ASGI host for the routing stages.

Runs the same two stages a CDN would run, in order, on every inbound
request, then forwards the finalized request to the shared origin:

1. ``EdgeRoutingMiddleware`` builds an ``EdgeRequest`` from the Starlette
   request, runs the resolver and the origin finalizer, and either answers
   directly (404/400/500) or stores the finalized request on
   ``request.state.routed_request``.
2. ``OriginForwarder`` sends the finalized request to the origin over a
   shared ``httpx.AsyncClient``, with ``Host`` set to the finalized host.

The carrier header never leaves the process: the finalizer always removes
it before forwarding.
"""

from __future__ import annotations

import httpx
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from .models import EdgeRequest, EdgeResponse
from .observability.logging import get_logger, request_id_ctx
from .routing.finalizer import OriginFinalizer
from .routing.headers import normalize_header_map, without_hop_by_hop
from .routing.resolver import DomainResolver
from .settings import RouterSettings

logger = get_logger(__name__)

# Paths served by the gateway itself; never routed to a workspace.
ADMIN_PATH_PREFIX = "/_edge/"

# Recomputed by httpx/Starlette for the re-encoded body.
_BODY_FRAMING_HEADERS: frozenset[str] = frozenset({
    "content-length",
    "content-encoding",
})


def _raw_path(request: Request) -> str:
    """The path exactly as the client sent it, percent-encoding intact.

    ``request.url.path`` is decoded, and re-embedding it would turn
    ``%3F``/``%23``/``%2F`` into query, fragment and separator characters.
    """
    raw = request.scope.get("raw_path")
    if not raw:
        return request.url.path
    # Some servers include the query string in raw_path.
    return raw.split(b"?", 1)[0].decode("latin-1")


def edge_request_from_starlette(request: Request) -> EdgeRequest:
    headers = normalize_header_map(request.headers)
    host = headers.pop("host", None)
    return EdgeRequest(
        host=host,
        path=_raw_path(request),
        query=request.url.query,
        method=request.method,
        headers=headers,
    )


def edge_response_to_starlette(response: EdgeResponse) -> Response:
    return Response(
        content=response.body,
        status_code=response.status,
        media_type=response.headers.get("content-type", "text/plain"),
    )


class EdgeRoutingMiddleware(BaseHTTPMiddleware):
    """Run resolver and finalizer before the forwarding route handler."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        resolver: DomainResolver,
        finalizer: OriginFinalizer,
    ) -> None:
        super().__init__(app)
        self._resolver = resolver
        self._finalizer = finalizer

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path.startswith(ADMIN_PATH_PREFIX):
            return await call_next(request)

        resolved = await self._resolver.resolve(edge_request_from_starlette(request))
        if isinstance(resolved, EdgeResponse):
            return edge_response_to_starlette(resolved)

        finalized = self._finalizer.finalize(resolved)
        if isinstance(finalized, EdgeResponse):
            return edge_response_to_starlette(finalized)

        request.state.routed_request = finalized
        return await call_next(request)


class OriginForwarder:
    """Forward finalized requests to the shared origin.

    Args:
        settings: Router settings (origin host, scheme and timeout).
        http_client: Shared client; one is created (and owned) when omitted.
    """

    def __init__(
        self,
        settings: RouterSettings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    def target_url(self, routed: EdgeRequest) -> str:
        url = f"{self._settings.origin_scheme}://{self._settings.origin_host}{routed.path}"
        if routed.query:
            url = f"{url}?{routed.query}"
        return url

    def _request_headers(self, routed: EdgeRequest) -> dict[str, str]:
        headers = {
            key: value
            for key, value in without_hop_by_hop(routed.headers).items()
            if key not in _BODY_FRAMING_HEADERS
        }
        if routed.host is not None:
            headers["host"] = routed.host
        request_id = request_id_ctx.get()
        if request_id:
            headers["x-request-id"] = request_id
        return headers

    async def forward(self, routed: EdgeRequest, body: bytes = b"") -> Response:
        target_url = self.target_url(routed)
        try:
            origin_response = await self._client.request(
                method=routed.method,
                url=target_url,
                headers=self._request_headers(routed),
                content=body or None,
                timeout=self._settings.origin_timeout_seconds,
                follow_redirects=False,
            )
        except httpx.TimeoutException:
            logger.warning("origin_timeout", url=target_url)
            return JSONResponse(
                status_code=504,
                content={
                    "code": "ORIGIN_TIMEOUT",
                    "message": "Origin did not respond in time",
                    "request_id": request_id_ctx.get(),
                },
            )
        except httpx.HTTPError as exc:
            logger.warning("origin_unavailable", url=target_url, error=type(exc).__name__)
            return JSONResponse(
                status_code=502,
                content={
                    "code": "ORIGIN_UNAVAILABLE",
                    "message": "Could not connect to origin",
                    "request_id": request_id_ctx.get(),
                },
            )

        response_headers = {
            key: value
            for key, value in without_hop_by_hop(origin_response.headers).items()
            if key.lower() not in _BODY_FRAMING_HEADERS
        }
        return Response(
            content=origin_response.content,
            status_code=origin_response.status_code,
            headers=response_headers,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
