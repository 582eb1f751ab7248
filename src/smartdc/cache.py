"""Bounded, time-expiring response cache keyed by request path."""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

DEFAULT_CACHE_SIZE = 1000
DEFAULT_CACHE_EXPIRY_S = 60


class _Tombstone:
    __slots__ = ()

    def __repr__(self) -> str:
        return "TOMBSTONE"


TOMBSTONE: Any = _Tombstone()
"""Stored in place of a value once the resource at a path has been deleted."""


def now_ms() -> float:
    return time.time() * 1000.0


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    created_at: float


@dataclass(frozen=True)
class CacheLookup:
    """Result of one cache lookup."""

    hit: bool
    value: Any = None

    @property
    def deleted(self) -> bool:
        return self.hit and self.value is TOMBSTONE


MISS = CacheLookup(hit=False)


class ResponseCache:
    """LRU mapping of request path to the last decoded response body.

    Entries older than the applicable TTL read as misses but stay in place
    until overwritten or evicted.
    """

    def __init__(
        self,
        *,
        size: int = DEFAULT_CACHE_SIZE,
        expiry_ms: float = DEFAULT_CACHE_EXPIRY_S * 1000,
        enabled: bool = True,
        clock: Callable[[], float] = now_ms,
        log: logging.Logger | None = None,
    ) -> None:
        if size < 1:
            raise ValueError("cache size must be positive")
        if expiry_ms < 0:
            raise ValueError("cache expiry must not be negative")
        self.size = int(size)
        self.expiry_ms = float(expiry_ms)
        self.enabled = enabled
        self._clock = clock
        self._log = log or logging.getLogger("smartdc")
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _store(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry
        self._entries.move_to_end(key)
        while len(self._entries) > self.size:
            evicted, _ = self._entries.popitem(last=False)
            self._log.debug("cache evict %s", evicted)

    def put(self, key: str, value: Any) -> bool:
        """Store ``value`` under ``key``; returns False when caching is off."""
        if not key:
            raise ValueError("cache key required")
        if not self.enabled:
            return False
        if value is TOMBSTONE:
            self._log.debug("cache purge %s", key)
        else:
            self._log.debug("cache put %s", key)
        self._store(key, CacheEntry(value=value, created_at=self._clock()))
        return True

    def purge(self, key: str) -> bool:
        """Record that the resource at ``key`` no longer exists."""
        return self.put(key, TOMBSTONE)

    def discard(self, key: str) -> bool:
        """Forget ``key`` entirely, tombstone included."""
        if self._entries.pop(key, None) is None:
            return False
        self._log.debug("cache discard %s", key)
        return True

    def get(self, key: str, ttl: float | None = None) -> CacheLookup:
        """Look up ``key``; ``ttl`` (ms) overrides the default expiry."""
        if not key:
            raise ValueError("cache key required")
        if not self.enabled:
            return MISS
        entry = self._entries.get(key)
        if entry is None:
            self._log.debug("cache miss %s", key)
            return MISS
        max_age = self.expiry_ms if ttl is None else ttl
        age = self._clock() - entry.created_at
        if age > max_age:
            self._log.debug("cache stale %s age=%dms", key, age)
            return MISS
        self._entries.move_to_end(key)
        self._log.debug("cache hit %s", key)
        return CacheLookup(hit=True, value=entry.value)

    def clear(self) -> None:
        self._entries.clear()
