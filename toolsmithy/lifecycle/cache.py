"""Content-addressed result cache with lazy TTL expiry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry:
    result: Any
    cached_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.cached_at < ttl


class ResultCache:
    """Maps cache keys to successful results.

    Expired entries are reported as misses but stay stored until they are
    overwritten or the cache is cleared; there is no background sweep.
    """

    def __init__(self, ttl_seconds: float) -> None:
        self.ttl = ttl_seconds
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    @ttl.setter
    def ttl(self, value: float) -> None:
        if value <= 0:
            raise ValueError("ttl must be > 0")
        self._ttl = value

    def lookup(self, key: str, now: float) -> tuple[bool, Any]:
        """Return ``(hit, result)``; distinguishes a cached ``None`` from a miss."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(now, self._ttl):
            return False, None
        return True, entry.result

    def get(self, key: str, now: float, default: Any = None) -> Any:
        hit, result = self.lookup(key, now)
        return result if hit else default

    def put(self, key: str, result: Any, now: float) -> None:
        self._entries[key] = CacheEntry(result=result, cached_at=now)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
