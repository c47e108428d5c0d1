"""Routing stages: hostname resolution, path rewrite, and host finalization."""

from .finalizer import OriginFinalizer
from .headers import (
    CARRIER_HEADER,
    DEBUG_ORIGINAL_URI_HEADER,
    DEBUG_WORKSPACE_HEADER,
)
from .resolver import DomainResolver, normalize_host
from .rewrite import rewrite_path, workspace_segment

__all__ = [
    'CARRIER_HEADER',
    'DEBUG_ORIGINAL_URI_HEADER',
    'DEBUG_WORKSPACE_HEADER',
    'DomainResolver',
    'OriginFinalizer',
    'normalize_host',
    'rewrite_path',
    'workspace_segment',
]
