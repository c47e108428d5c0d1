"""Lookup store protocol for dependency injection.

Concrete implementations (InMemory for local dev, Supabase for non-local)
must satisfy this contract. The resolver and the app factory accept any
implementation that matches it.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import DomainMapping


@runtime_checkable
class DomainMappingStore(Protocol):
    """Point read of the active mapping for one normalized hostname.

    Returns None both when no record exists and when the record is not
    active. Raises ``StoreUnavailable`` on any transport or availability
    failure.
    """

    async def lookup(self, hostname: str) -> DomainMapping | None: ...
