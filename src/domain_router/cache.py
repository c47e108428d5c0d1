"""Per-process hostname -> workspace cache with TTL expiry.

Holds positive entries (workspace id) and negative entries (``None``: no
active mapping). Entries are never deleted, only superseded or ignored once
stale, and the whole cache dies with the process. Instances are not shared,
so a mapping change may take up to one TTL to be observed.
"""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, NamedTuple

DEFAULT_TTL_SECONDS = 300.0


class CacheLookup(NamedTuple):
    """Result of a cache read.

    ``value`` is the workspace id, or None for a negative entry.
    A ``found`` but not ``fresh`` entry must be treated as a miss.
    """

    value: str | None
    found: bool
    fresh: bool


_MISS = CacheLookup(value=None, found=False, fresh=False)


class DomainCache:
    """Thread-safe TTL map keyed by normalized hostname.

    Args:
        ttl_seconds: Lifetime applied to every entry unless ``put`` overrides it.
        clock: Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[str, tuple[str | None, float]] = {}
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, hostname: str) -> CacheLookup:
        with self._lock:
            entry = self._entries.get(hostname)
        if entry is None:
            return _MISS
        value, expires_at = entry
        return CacheLookup(value=value, found=True, fresh=self._clock() < expires_at)

    def put(self, hostname: str, value: str | None, ttl: float | None = None) -> None:
        expires_at = self._clock() + (self._ttl if ttl is None else float(ttl))
        with self._lock:
            self._entries[hostname] = (value, expires_at)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
