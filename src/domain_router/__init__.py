"""Custom-domain edge router.

Resolves customer hostnames to workspaces and rewrites requests so one
shared application deployment can serve every workspace.
"""

from .cache import CacheLookup, DomainCache
from .errors import MalformedRequest, RoutingError, StoreUnavailable, TransformInvariantViolation
from .models import DomainMapping, EdgeRequest, EdgeResponse, MappingStatus
from .settings import RouterSettings

__all__ = [
    "CacheLookup",
    "DomainCache",
    "DomainMapping",
    "EdgeRequest",
    "EdgeResponse",
    "MalformedRequest",
    "MappingStatus",
    "RouterSettings",
    "RoutingError",
    "StoreUnavailable",
    "TransformInvariantViolation",
]
