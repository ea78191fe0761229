"""Keyed TTL cache for provider responses.

A matchday ingestion asks for the same round fixtures and the same fixture
player lists once per player; the provider keeps them here instead of
spending API requests.

Usage:
    _cache = TTLCache(ttl=600)

    hit, data = _cache.get(("round", 140, 2025, 12))
    if not hit:
        data = await fetch()
        _cache.set(("round", 140, 2025, 12), data)
"""

import time
from typing import Hashable


class TTLCache:
    """TTL-based cache keyed by any hashable value."""

    __slots__ = ("ttl", "_entries")

    def __init__(self, ttl: float):
        self.ttl = ttl
        self._entries: dict[Hashable, tuple[float, object]] = {}

    def get(self, key: Hashable) -> tuple[bool, object]:
        """Return (hit, data). Expired entries are dropped."""
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        timestamp, data = entry
        if time.time() - timestamp >= self.ttl:
            del self._entries[key]
            return False, None
        return True, data

    def set(self, key: Hashable, data: object) -> None:
        """Store data with current timestamp, dropping entries that have expired."""
        now = time.time()
        expired = [k for k, (timestamp, _) in self._entries.items() if now - timestamp >= self.ttl]
        for k in expired:
            del self._entries[k]
        self._entries[key] = (now, data)

    def invalidate(self, key: Hashable = None) -> None:
        """Drop one key, or everything when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
