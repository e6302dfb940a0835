"""Port for the storage engine behind the caching DAO."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

type CacheKey = tuple[str, Hashable]


@dataclass(frozen=True, slots=True)
class CachedValue:
    """Wrapper that lets a cached ``None`` differ from a missing entry."""

    value: object


@runtime_checkable
class CacheStore(Protocol):
    """Physical storage for cached results; owns eviction but not key derivation."""

    def get(self, key: CacheKey) -> CachedValue | None: ...

    def put(self, key: CacheKey, value: object) -> None: ...

    def remove(self, key: CacheKey) -> bool: ...

    def flush(self) -> None: ...

    def size(self) -> int: ...
