from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

import pytest

from persondir.adapters.memory_cache import InMemoryCacheStore
from persondir.domain.attributes import Person
from persondir.domain.cache_keys import AttributeBasedCacheKeyGenerator, Operation
from persondir.domain.caching import CacheStatistics, CachingPersonAttributeDao

if TYPE_CHECKING:
    from collections.abc import Callable


@pytest.fixture
def backend(recording_dao_factory: Callable[..., Any]) -> Any:
    return recording_dao_factory(
        [Person("edalquist", {"username": ["edalquist"], "mail": ["ed@example.edu"]})],
        possible_names={"username", "mail"},
        query_attributes={"username"},
    )


@pytest.fixture
def caching_dao(backend: Any) -> CachingPersonAttributeDao:
    return CachingPersonAttributeDao(backend, InMemoryCacheStore())


def test_counters_follow_lookup_sequence(caching_dao: CachingPersonAttributeDao) -> None:
    assert caching_dao.stats == CacheStatistics()

    caching_dao.get_person("edalquist")
    assert caching_dao.stats == CacheStatistics(size=1, misses=1, puts=1)

    caching_dao.get_person("edalquist")
    assert caching_dao.stats == CacheStatistics(size=1, hits=1, misses=1, puts=1)

    caching_dao.get_people_with_multivalued_attributes({"username": ["edalquist"]})
    assert caching_dao.stats == CacheStatistics(size=2, hits=1, misses=2, puts=2)

    caching_dao.get_person("edalquist")
    caching_dao.get_person("edalquist")
    assert caching_dao.stats == CacheStatistics(size=2, hits=3, misses=2, puts=2)


def test_single_and_set_lookups_never_share_entries(
    caching_dao: CachingPersonAttributeDao,
    backend: Any,
) -> None:
    person = caching_dao.get_person("edalquist")
    people = caching_dao.get_people_with_multivalued_attributes({"username": ["edalquist"]})
    scalar_people = caching_dao.get_people({"username": "edalquist"})

    assert isinstance(person, Person)
    assert isinstance(people, list)
    assert scalar_people == people
    assert caching_dao.stats.misses == 3
    assert caching_dao.stats.hits == 0
    assert backend.calls == [
        "get_person",
        "get_people_with_multivalued_attributes",
        "get_people",
    ]


def test_discovery_is_served_from_cache(
    caching_dao: CachingPersonAttributeDao,
    backend: Any,
) -> None:
    first = caching_dao.get_possible_user_attribute_names()
    backend.calls.clear()
    second = caching_dao.get_possible_user_attribute_names()

    assert first == second == {"username", "mail"}
    assert backend.calls == []
    assert caching_dao.stats.misses == 1
    assert caching_dao.stats.hits == 1

    caching_dao.get_available_query_attributes()
    caching_dao.get_available_query_attributes()
    assert backend.calls == ["get_available_query_attributes"]


def test_missing_person_is_cached_by_default(
    caching_dao: CachingPersonAttributeDao,
    backend: Any,
) -> None:
    assert caching_dao.get_person("nobody") is None
    assert caching_dao.get_person("nobody") is None

    assert backend.calls == ["get_person"]
    assert caching_dao.stats.hits == 1
    assert caching_dao.stats.size == 1


def test_missing_person_is_not_stored_when_disabled(backend: Any) -> None:
    caching_dao = CachingPersonAttributeDao(
        backend,
        InMemoryCacheStore(),
        cache_null_results=False,
    )

    caching_dao.get_person("nobody")
    caching_dao.get_person("nobody")

    assert backend.calls == ["get_person", "get_person"]
    assert caching_dao.stats == CacheStatistics(misses=2)


def test_remove_and_flush_update_counters(
    caching_dao: CachingPersonAttributeDao,
    backend: Any,
) -> None:
    caching_dao.get_person("edalquist")
    caching_dao.get_possible_user_attribute_names()

    assert caching_dao.remove_person("edalquist") is True
    assert caching_dao.remove_person("edalquist") is False
    assert caching_dao.stats.removes == 2
    assert caching_dao.stats.size == 1

    caching_dao.flush()
    assert caching_dao.stats.flushes == 1
    assert caching_dao.stats.size == 0

    caching_dao.get_possible_user_attribute_names()
    assert backend.calls.count("get_possible_user_attribute_names") == 2


def test_cache_key_attributes_limit_key_contents() -> None:
    generator = AttributeBasedCacheKeyGenerator(cache_key_attributes=frozenset({"uid"}))

    assert generator.for_people({"uid": "a", "mail": "x"}) == generator.for_people({"uid": "a"})
    assert generator.for_people({"uid": "a"}) != generator.for_people({"uid": "b"})


def test_cache_keys_are_order_independent_and_hashable() -> None:
    generator = AttributeBasedCacheKeyGenerator(username_attribute="uid")

    first = generator.for_multivalued_people({"uid": ["a"], "tags": [["x"], {"k": 1}]})
    second = generator.for_multivalued_people({"tags": [["x"], {"k": 1}], "uid": ["a"]})

    assert first == second
    assert hash(first) == hash(second)
    assert generator.for_person("a") == (Operation.GET_PERSON, (("uid", (("str", "a"),)),))
    assert generator.for_discovery(Operation.GET_AVAILABLE_QUERY_ATTRIBUTES)[1] == ()


def test_equal_values_of_different_types_get_distinct_keys() -> None:
    generator = AttributeBasedCacheKeyGenerator()

    assert generator.for_people({"flag": True}) != generator.for_people({"flag": 1})
    assert generator.for_people({"flag": 1}) != generator.for_people({"flag": 1.0})
    assert generator.for_people({"flag": 1}) != generator.for_people({"flag": "1"})
    assert generator.for_multivalued_people({"tags": [["x"]]}) != (
        generator.for_multivalued_people({"tags": ["['x']"]})
    )


def test_mutating_a_returned_value_leaves_the_cache_intact(
    caching_dao: CachingPersonAttributeDao,
) -> None:
    person = caching_dao.get_person("edalquist")
    assert person is not None
    person.attributes["mail"].append("stolen@example.edu")
    person.attributes["nickname"] = ["ed"]

    people = caching_dao.get_people_with_multivalued_attributes({"username": ["edalquist"]})
    people.clear()

    again = caching_dao.get_person("edalquist")
    assert again == Person("edalquist", {"username": ["edalquist"], "mail": ["ed@example.edu"]})
    assert len(caching_dao.get_people_with_multivalued_attributes({"username": ["edalquist"]})) == 1
    assert caching_dao.stats.hits == 2


def test_counters_stay_consistent_under_concurrent_lookups(
    recording_dao_factory: Callable[..., Any],
) -> None:
    uids = ["alice", "bob", "carol", "dave"]
    backend = recording_dao_factory(
        [Person(uid, {"username": [uid]}) for uid in uids],
    )
    caching_dao = CachingPersonAttributeDao(backend, InMemoryCacheStore())
    workers, lookups = 8, 500

    def hammer(worker: int) -> None:
        for index in range(lookups):
            caching_dao.get_person(uids[(worker + index) % len(uids)])

    with ThreadPoolExecutor(max_workers=workers) as pool:
        list(pool.map(hammer, range(workers)))

    stats = caching_dao.stats
    assert stats.hits + stats.misses == workers * lookups
    assert stats.puts == stats.misses
    assert stats.misses >= len(uids)
    assert stats.size == len(uids)
