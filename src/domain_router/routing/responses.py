"""Fixed responses produced by the router itself.

Bodies are static. The only caller-supplied value ever echoed is the
(already validated) hostname in the not-configured body.
"""

from __future__ import annotations

from ..models import EdgeResponse

LOOKUP_ERROR_BODY = "An error occurred while looking up the domain configuration"
INTERNAL_ERROR_BODY = "An error occurred processing your request"
MALFORMED_BODY = "Missing or invalid host header"


def not_configured(host: str) -> EdgeResponse:
    return EdgeResponse(
        status=404,
        status_description="Not Found",
        body=f"Domain {host} is not configured",
    )


def lookup_error() -> EdgeResponse:
    return EdgeResponse(
        status=500,
        status_description="Internal Server Error",
        body=LOOKUP_ERROR_BODY,
    )


def internal_error() -> EdgeResponse:
    return EdgeResponse(
        status=500,
        status_description="Internal Server Error",
        body=INTERNAL_ERROR_BODY,
    )


def malformed_request() -> EdgeResponse:
    return EdgeResponse(
        status=400,
        status_description="Bad Request",
        body=MALFORMED_BODY,
    )
