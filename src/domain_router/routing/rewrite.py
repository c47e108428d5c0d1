"""Workspace path rewrite.

Maps a request path on a customer hostname to the equivalent path on the
shared origin by prefixing the workspace segment:

    /                -> /workspace-1/
    /dashboard       -> /workspace-1/dashboard
    /workspace-7/x   -> /workspace-7/x   (explicit segment, left untouched)

Two segment styles exist. ``numeric`` rebuilds the legacy
``workspace-<n>`` segment from the numeric suffix of the workspace id;
``opaque`` uses the workspace id verbatim.
"""

from __future__ import annotations

import re

from ..errors import TransformInvariantViolation

DEFAULT_SEGMENT_PATTERN = r"^/workspace-\d+(?=/|$)"

_NUMERIC_SUFFIX_RE = re.compile(r"-(\d+)$")
_SAFE_SEGMENT_RE = re.compile(r"^[A-Za-z0-9._~-]+$")


def ensure_leading_slash(path: str) -> str:
    return path if path.startswith("/") else f"/{path}"


def workspace_segment(workspace_id: str, style: str = "numeric") -> str:
    """Return the path segment the shared origin expects for ``workspace_id``.

    Raises:
        TransformInvariantViolation: If the id cannot form a safe segment.
    """
    if style == "numeric":
        match = _NUMERIC_SUFFIX_RE.search(workspace_id)
        if match is None:
            raise TransformInvariantViolation(
                f"workspace id {workspace_id!r} has no numeric suffix"
            )
        return f"workspace-{match.group(1)}"

    if style == "opaque":
        if workspace_id in (".", "..") or not _SAFE_SEGMENT_RE.match(workspace_id):
            raise TransformInvariantViolation(
                f"workspace id {workspace_id!r} is not a safe path segment"
            )
        return workspace_id

    raise TransformInvariantViolation(f"unknown workspace path style {style!r}")


def has_workspace_segment(path: str, pattern: re.Pattern[str] | str = DEFAULT_SEGMENT_PATTERN) -> bool:
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    return pattern.match(path) is not None


def rewrite_path(
    path: str,
    workspace_id: str,
    *,
    style: str = "numeric",
    segment_pattern: re.Pattern[str] | str = DEFAULT_SEGMENT_PATTERN,
) -> str:
    """Prefix ``path`` with the workspace segment unless it already has one."""
    path = ensure_leading_slash(path or "/")
    if has_workspace_segment(path, segment_pattern):
        return path

    segment = workspace_segment(workspace_id, style)
    if path == "/":
        return f"/{segment}/"
    return f"/{segment}{path}"
