"""In-memory lookup store for local development and tests.

Used when ENVIRONMENT=local. Satisfies the DomainMappingStore protocol but
keeps everything in a dict (no persistence across restarts).
"""

from __future__ import annotations

from datetime import datetime, timezone

from .models import DomainMapping, MappingStatus


class InMemoryDomainMappingStore:
    def __init__(self, mappings: list[DomainMapping] | None = None) -> None:
        self._mappings: dict[str, DomainMapping] = {}
        self.lookups = 0
        for mapping in mappings or []:
            self._mappings[mapping.domain.lower()] = mapping

    def add(
        self,
        domain: str,
        workspace_id: str,
        status: MappingStatus | None = MappingStatus.ACTIVE,
    ) -> DomainMapping:
        now = datetime.now(timezone.utc).isoformat()
        mapping = DomainMapping(
            domain=domain.lower(),
            workspace_id=workspace_id,
            status=status,
            created_at=now,
            verified_at=now if status is MappingStatus.ACTIVE else None,
        )
        self._mappings[mapping.domain] = mapping
        return mapping

    def remove(self, domain: str) -> bool:
        return self._mappings.pop(domain.lower(), None) is not None

    async def lookup(self, hostname: str) -> DomainMapping | None:
        self.lookups += 1
        mapping = self._mappings.get(hostname)
        if mapping is None or not mapping.is_active:
            return None
        return mapping
