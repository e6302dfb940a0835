"""In-process cache store for the caching DAO."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import TYPE_CHECKING

from persondir.domain.ports.cache import CachedValue

if TYPE_CHECKING:
    from persondir.domain.ports.cache import CacheKey


@dataclass(slots=True)
class _Entry:
    value: object
    expires_at: float | None


class InMemoryCacheStore:
    """Thread-safe dict store with optional size bound and time-to-live.

    When ``max_entries`` is reached the oldest entry is evicted first.
    """

    def __init__(
        self,
        *,
        max_entries: int | None = None,
        ttl_seconds: float | None = None,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._entries: OrderedDict[CacheKey, _Entry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> CachedValue | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at is not None and entry.expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return CachedValue(entry.value)

    def put(self, key: CacheKey, value: object) -> None:
        expires_at = None
        if self.ttl_seconds is not None:
            expires_at = time.monotonic() + self.ttl_seconds
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = _Entry(value=value, expires_at=expires_at)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    self._entries.popitem(last=False)

    def remove(self, key: CacheKey) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)


if TYPE_CHECKING:
    from persondir.domain.ports.cache import CacheStore

    _store_check: CacheStore = InMemoryCacheStore()
