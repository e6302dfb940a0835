"""Caching decorator for any person attribute DAO.

Keys combine an operation discriminator with the normalised query, so a
single-person lookup and a set lookup never share an entry even when their
arguments normalise identically.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, cast

from .cache_keys import AttributeBasedCacheKeyGenerator, Operation

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .attributes import Person, Query
    from .ports.cache import CacheKey, CacheStore
    from .ports.sources import PersonAttributeDao

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CacheStatistics:
    """Point-in-time snapshot of the cache counters."""

    size: int = 0
    flushes: int = 0
    hits: int = 0
    misses: int = 0
    puts: int = 0
    removes: int = 0


class CachingPersonAttributeDao:
    """Serve DAO operations from ``store`` and fall back to ``target`` on a miss.

    Values are copied into and out of the store, so callers may mutate what
    they get back.
    """

    def __init__(
        self,
        target: PersonAttributeDao,
        store: CacheStore,
        *,
        key_generator: AttributeBasedCacheKeyGenerator | None = None,
        cache_null_results: bool = True,
    ) -> None:
        self.target = target
        self.store = store
        self.key_generator = key_generator or AttributeBasedCacheKeyGenerator()
        self.cache_null_results = cache_null_results
        self._lock = threading.Lock()
        self._flushes = 0
        self._hits = 0
        self._misses = 0
        self._puts = 0
        self._removes = 0

    @property
    def stats(self) -> CacheStatistics:
        with self._lock:
            return CacheStatistics(
                size=self.store.size(),
                flushes=self._flushes,
                hits=self._hits,
                misses=self._misses,
                puts=self._puts,
                removes=self._removes,
            )

    def get_person(self, uid: str) -> Person | None:
        key = self.key_generator.for_person(uid)
        return cast("Person | None", self._cached(key, lambda: self.target.get_person(uid)))

    def get_people(self, query: Mapping[str, object]) -> list[Person]:
        key = self.key_generator.for_people(query)
        return cast("list[Person]", self._cached(key, lambda: self.target.get_people(query)))

    def get_people_with_multivalued_attributes(self, query: Query) -> list[Person]:
        key = self.key_generator.for_multivalued_people(query)
        result = self._cached(
            key, lambda: self.target.get_people_with_multivalued_attributes(query)
        )
        return cast("list[Person]", result)

    def get_possible_user_attribute_names(self) -> set[str] | None:
        key = self.key_generator.for_discovery(Operation.GET_POSSIBLE_USER_ATTRIBUTE_NAMES)
        result = self._cached(key, self.target.get_possible_user_attribute_names)
        return cast("set[str] | None", result)

    def get_available_query_attributes(self) -> set[str] | None:
        key = self.key_generator.for_discovery(Operation.GET_AVAILABLE_QUERY_ATTRIBUTES)
        result = self._cached(key, self.target.get_available_query_attributes)
        return cast("set[str] | None", result)

    def remove(self, key: CacheKey) -> bool:
        removed = self.store.remove(key)
        with self._lock:
            self._removes += 1
        return removed

    def remove_person(self, uid: str) -> bool:
        return self.remove(self.key_generator.for_person(uid))

    def flush(self) -> None:
        self.store.flush()
        with self._lock:
            self._flushes += 1

    def _cached(self, key: CacheKey, compute: Callable[[], object]) -> object:
        cached = self.store.get(key)
        if cached is not None:
            with self._lock:
                self._hits += 1
            log.debug("Cache hit for %s", key[0])
            return copy.deepcopy(cached.value)

        with self._lock:
            self._misses += 1
        log.debug("Cache miss for %s", key[0])

        value = compute()
        if value is None and not self.cache_null_results:
            return None
        self.store.put(key, copy.deepcopy(value))
        with self._lock:
            self._puts += 1
        return value


if TYPE_CHECKING:
    from .ports.sources import PersonAttributeDao as _PersonAttributeDao

    _caching_check: _PersonAttributeDao = CachingPersonAttributeDao(
        cast("_PersonAttributeDao", object()),
        cast("CacheStore", object()),
    )
