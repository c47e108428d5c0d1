"""Origin finalizer stage: apply the deferred Host substitution.

Runs immediately before the request reaches the shared origin, the first
point where the Host header is writable. Performs exactly one substitution
and one deletion; path and cache are never touched.
"""

from __future__ import annotations

from ..models import EdgeRequest, EdgeResponse
from ..observability.logging import get_logger
from ..observability.metrics import ORIGIN_FINALIZATIONS_TOTAL
from . import responses
from .headers import CARRIER_HEADER, remove_header

logger = get_logger(__name__)


class OriginFinalizer:
    def __init__(self, carrier_header: str = CARRIER_HEADER) -> None:
        self._carrier_header = carrier_header.lower()

    def finalize(self, request: EdgeRequest) -> EdgeRequest | EdgeResponse:
        """Move the carrier value into the Host header, or forward unchanged.

        Any unexpected failure yields the fixed internal-error response so a
        request never reaches the origin with a mismatched host/path pair.
        """
        try:
            finalized = request.copy()
            origin_host = remove_header(finalized, self._carrier_header)
            # An empty carrier never replaces the host.
            if origin_host is None or not origin_host.strip():
                ORIGIN_FINALIZATIONS_TOTAL.labels(result="unchanged").inc()
                return finalized

            logger.info(
                "host_substituted",
                original_host=request.host,
                origin_host=origin_host,
                path=request.path,
            )
            finalized.host = origin_host.strip()
            ORIGIN_FINALIZATIONS_TOTAL.labels(result="host_substituted").inc()
            return finalized
        except Exception:
            logger.exception("finalizer_error", path=getattr(request, "path", None))
            ORIGIN_FINALIZATIONS_TOTAL.labels(result="error").inc()
            return responses.internal_error()
