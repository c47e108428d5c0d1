"""Lambda@Edge adapters: CloudFront event codec and stage entry points."""

from .handlers import (
    EdgeRuntime,
    configure,
    get_runtime,
    origin_request_handler,
    viewer_request_handler,
)

__all__ = [
    'EdgeRuntime',
    'configure',
    'get_runtime',
    'origin_request_handler',
    'viewer_request_handler',
]
