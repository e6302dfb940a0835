"""Domain port definitions for adapters."""

from __future__ import annotations

from .cache import CachedValue, CacheKey, CacheStore
from .sources import AttributeSourceAdapter, PersonAttributeDao, Row

__all__ = [
    "AttributeSourceAdapter",
    "CacheKey",
    "CacheStore",
    "CachedValue",
    "PersonAttributeDao",
    "Row",
]
