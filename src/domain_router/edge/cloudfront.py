"""CloudFront Lambda@Edge event codec.

CloudFront hands a request as ``event["Records"][0]["cf"]["request"]`` with
headers in list form::

    {"host": [{"key": "Host", "value": "gallery.example.com"}]}

These helpers convert that shape to ``EdgeRequest`` and back, and render an
``EdgeResponse`` as a CloudFront generated response.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping

from ..errors import MalformedRequest
from ..models import EdgeRequest, EdgeResponse

CloudFrontHeaders = dict[str, list[dict[str, str]]]


def canonical_header_name(name: str) -> str:
    """``x-custom-host`` -> ``X-Custom-Host``."""
    return "-".join(part.capitalize() for part in name.split("-"))


def extract_request(event: Mapping[str, Any]) -> dict[str, Any]:
    """Return the CloudFront request dict from a Lambda@Edge event.

    Raises:
        MalformedRequest: If the event does not have the expected structure.
    """
    try:
        cf_request = event["Records"][0]["cf"]["request"]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedRequest("invalid event structure") from exc
    if not isinstance(cf_request, dict):
        raise MalformedRequest("invalid event structure")
    return cf_request


def extract_request_id(event: Mapping[str, Any]) -> str | None:
    try:
        return event["Records"][0]["cf"]["config"]["requestId"]
    except (KeyError, IndexError, TypeError):
        return None


def request_from_cloudfront(cf_request: Mapping[str, Any]) -> EdgeRequest:
    """Build an ``EdgeRequest``; the Host header moves to ``EdgeRequest.host``."""
    headers: dict[str, str] = {}
    for name, entries in (cf_request.get("headers") or {}).items():
        if entries:
            headers[name.lower()] = entries[0].get("value", "")

    host = headers.pop("host", None)
    return EdgeRequest(
        host=host,
        path=cf_request.get("uri") or "/",
        query=cf_request.get("querystring") or "",
        method=cf_request.get("method") or "GET",
        headers=headers,
    )


def _header_entries(
    original: CloudFrontHeaders,
    name: str,
    value: str,
) -> list[dict[str, str]]:
    entries = original.get(name)
    if entries and entries[0].get("value") == value:
        # Unchanged: keep every original entry (multi-value headers, key casing).
        return copy.deepcopy(entries)
    key = entries[0].get("key", canonical_header_name(name)) if entries else canonical_header_name(name)
    return [{"key": key, "value": value}]


def request_to_cloudfront(
    edge_request: EdgeRequest,
    original: Mapping[str, Any],
) -> dict[str, Any]:
    """Write ``edge_request`` back onto a copy of the original CloudFront request."""
    result = copy.deepcopy(dict(original))
    original_headers: CloudFrontHeaders = {
        name.lower(): entries for name, entries in (original.get("headers") or {}).items()
    }

    headers: CloudFrontHeaders = {}
    if edge_request.host is not None:
        headers["host"] = _header_entries(original_headers, "host", edge_request.host)
    for name, value in edge_request.headers.items():
        headers[name] = _header_entries(original_headers, name, value)

    result["headers"] = headers
    result["uri"] = edge_request.path
    result["querystring"] = edge_request.query
    return result


def response_to_cloudfront(response: EdgeResponse) -> dict[str, Any]:
    """Render a generated response in the shape CloudFront expects."""
    return {
        "status": str(response.status),
        "statusDescription": response.status_description,
        "headers": {
            name.lower(): [{"key": canonical_header_name(name), "value": value}]
            for name, value in response.headers.items()
        },
        "body": response.body,
    }
