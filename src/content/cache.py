"""
In-memory TTL cache owned by a content store instance.

Replaces module-level caches: each store holds its own ``TTLCache`` with a
defined expiry and an explicit ``invalidate``.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable
from typing import Any

DEFAULT_MAX_ENTRIES = 256


class TTLCache:
    """
    Key/value cache with per-entry expiry.

    Features:
    - TTL-based expiration (``ttl_seconds <= 0`` disables caching)
    - Bounded size, oldest entry evicted first
    - Full or per-key invalidation
    - Hit/miss statistics tracking
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, dict[str, Any]] = {}  # key -> {value, expires_at}, insertion ordered
        self._stats = {"hits": 0, "misses": 0, "evictions": 0}

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None or entry["expires_at"] <= self._clock():
            self._entries.pop(key, None)
            self._stats["misses"] += 1
            return None
        self._stats["hits"] += 1
        return entry["value"]

    def set(self, key: Hashable, value: Any) -> None:
        if self.ttl_seconds <= 0 or self.max_entries <= 0:
            return
        now = self._clock()
        self._purge_expired(now)
        # Re-inserting moves the key to the newest position
        self._entries.pop(key, None)
        while len(self._entries) >= self.max_entries:
            del self._entries[next(iter(self._entries))]
            self._stats["evictions"] += 1
        self._entries[key] = {"value": value, "expires_at": now + self.ttl_seconds}

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one entry, or everything when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def get_stats(self) -> dict[str, int]:
        return {**self._stats, "size": len(self._entries)}

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if entry["expires_at"] <= now]
        for key in expired:
            del self._entries[key]
