"""Timestamped key/value cache for existence probes."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

V = TypeVar("V")

Clock = Callable[[], float]


@dataclass(slots=True, frozen=True)
class CacheEntry(Generic[V]):
    """Cached value and the clock reading at which it was stored."""

    value: V
    timestamp: float


class TimedCache(Generic[V]):
    """Cache whose reads are gated by entry age.

    Entries carry no TTL of their own; callers pass the maximum trusted age on
    each read, so one store can serve lookups with different freshness needs.
    The clock is injectable so tests can advance time explicitly.

    All operations take an internal lock: scan workers write entries while the
    owning application may sweep or invalidate from another thread.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str, ttl: float) -> Optional[V]:
        """Return the value for ``key`` if it is younger than ``ttl`` seconds."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._clock() - entry.timestamp >= ttl:
                return None
            return entry.value

    def set(self, key: str, value: V) -> None:
        """Store ``value`` stamped with the current time."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, timestamp=self._clock())

    def delete(self, key: str) -> bool:
        """Remove ``key``; return whether it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def cleanup(self, max_age: float) -> int:
        """Evict entries older than ``max_age`` seconds.

        Returns:
            int: Number of evicted entries.
        """
        with self._lock:
            now = self._clock()
            stale = [
                key for key, entry in self._entries.items() if now - entry.timestamp > max_age
            ]
            for key in stale:
                del self._entries[key]
        return len(stale)


def existence_key(url: str) -> str:
    """Return the cache key used for existence probes of ``url``."""
    return f"exists:{url}"


__all__ = ["CacheEntry", "Clock", "TimedCache", "existence_key"]
