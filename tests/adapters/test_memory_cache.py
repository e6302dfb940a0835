from __future__ import annotations

import pytest

from persondir.adapters.memory_cache import InMemoryCacheStore
from persondir.domain.ports.cache import CachedValue


def test_get_distinguishes_cached_none_from_miss() -> None:
    store = InMemoryCacheStore()
    store.put(("person", "jdoe"), None)

    assert store.get(("person", "jdoe")) == CachedValue(None)
    assert store.get(("person", "ghost")) is None


def test_oldest_entry_is_evicted_when_full() -> None:
    store = InMemoryCacheStore(max_entries=2)
    store.put(("key", "a"), 1)
    store.put(("key", "b"), 2)
    store.put(("key", "a"), 3)
    store.put(("key", "c"), 4)

    assert store.get(("key", "b")) is None
    assert store.get(("key", "a")) == CachedValue(3)
    assert store.get(("key", "c")) == CachedValue(4)
    assert store.size() == 2


def test_expired_entries_are_dropped() -> None:
    store = InMemoryCacheStore(ttl_seconds=0)
    store.put(("key", "a"), 1)

    assert store.get(("key", "a")) is None
    assert store.size() == 0


def test_remove_and_flush() -> None:
    store = InMemoryCacheStore()
    store.put(("key", "a"), 1)
    store.put(("key", "b"), 2)

    assert store.remove(("key", "a")) is True
    assert store.remove(("key", "a")) is False
    store.flush()
    assert store.size() == 0


def test_max_entries_must_be_positive() -> None:
    with pytest.raises(ValueError, match="max_entries"):
        InMemoryCacheStore(max_entries=0)
