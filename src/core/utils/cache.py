"""
Bounded in-process cache with per-entry expiry.

Used for derived, re-computable data only (per-user statistics). Nothing
depends on an entry being present; a cache with ``max_entries=0`` stores
nothing and every lookup misses.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

Clock = Callable[[], float]

_MISSING = object()


class TTLCache:
    """Thread-safe LRU map whose entries expire ``ttl_seconds`` after being set.

    The clock is injectable so expiry can be driven deterministically in tests.
    """

    def __init__(
        self,
        *,
        max_entries: int,
        ttl_seconds: float,
        clock: Clock = time.monotonic,
    ) -> None:
        if max_entries < 0:
            raise ValueError("max_entries must be zero or positive")
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be zero or positive")

        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self._max_entries > 0 and self._ttl > 0

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key, _MISSING)

            if entry is _MISSING:
                self._misses += 1
                return default

            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self._misses += 1
                return default

            self._entries.move_to_end(key)
            self._hits += 1
            return value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        if not self.enabled:
            return

        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value)
            self._entries.move_to_end(key)

            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def get_or_set(self, key: str, factory: Callable[[], Any]) -> Any:
        """Return the cached value or compute, store and return a fresh one.

        The factory runs outside the lock; concurrent misses may compute twice.
        """
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        value = factory()
        self.set(key, value)
        return value

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_entries": self._max_entries,
                "hits": self._hits,
                "misses": self._misses,
            }
