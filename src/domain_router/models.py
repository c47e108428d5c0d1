"""Domain mapping record and the request/response shapes the stages exchange."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


class MappingStatus(str, Enum):
    ACTIVE = "active"
    PENDING_VALIDATION = "pending_validation"
    ERROR = "error"

    @classmethod
    def parse(cls, raw: Any) -> MappingStatus | None:
        """Return the status for ``raw``, or None for absent/unknown values."""
        if raw is None:
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class DomainMapping:
    """Persisted association between a customer hostname and a workspace.

    Written by the registration/verification workflow; the router only reads.

    Attributes:
        domain: Lowercase customer-facing hostname (unique key).
        workspace_id: Opaque workspace token (``workspace-<n>`` in practice).
        status: Lifecycle status; only ``active`` mappings route.
        created_at: Informational timestamp.
        verified_at: Informational timestamp.
    """

    domain: str
    workspace_id: str
    status: MappingStatus | None = None
    created_at: str | None = None
    verified_at: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is MappingStatus.ACTIVE and bool(self.workspace_id)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> DomainMapping:
        """Build a mapping from a store row (snake_case or camelCase keys)."""

        def pick(*keys: str) -> Any:
            for key in keys:
                if row.get(key) is not None:
                    return row[key]
            return None

        return cls(
            domain=str(pick("domain") or "").lower(),
            workspace_id=str(pick("workspace_id", "workspaceId") or ""),
            status=MappingStatus.parse(pick("status")),
            created_at=pick("created_at", "createdAt"),
            verified_at=pick("verified_at", "verifiedAt"),
        )


@dataclass(slots=True)
class EdgeRequest:
    """One in-flight request as seen by the routing stages.

    Header names are stored lowercased; use the helpers in
    ``routing.headers`` rather than touching ``headers`` directly.
    """

    host: str | None
    path: str = "/"
    query: str = ""
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)

    def copy(self) -> EdgeRequest:
        return copy.deepcopy(self)


@dataclass(frozen=True, slots=True)
class EdgeResponse:
    """A response produced directly by the router, bypassing the origin."""

    status: int
    status_description: str
    body: str
    headers: Mapping[str, str] = field(
        default_factory=lambda: {"content-type": "text/plain"}
    )
