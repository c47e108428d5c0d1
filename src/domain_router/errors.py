"""Routing error taxonomy.

"Domain not configured" is deliberately absent: an unmapped host is a normal
outcome answered with a fixed response, not an exception.
"""

from __future__ import annotations


class RoutingError(Exception):
    """Base class for failures inside the routing stages."""


class MalformedRequest(RoutingError):
    """The request has no usable host header (or an invalid event shape)."""


class StoreUnavailable(RoutingError):
    """The lookup store could not answer (transport, timeout, auth, 5xx).

    Never cached: the next request retries the store.
    """

    def __init__(self, hostname: str, reason: str) -> None:
        self.hostname = hostname
        self.reason = reason
        super().__init__(f"lookup store unavailable for {hostname!r}: {reason}")


class TransformInvariantViolation(RoutingError):
    """The resolved workspace cannot be expressed as a path segment.

    Handled by passing the request through unmodified.
    """
