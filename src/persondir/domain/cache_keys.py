"""Cache keys that keep results of different DAO operations apart."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from .attributes import from_username, to_multivalued

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .attributes import Query
    from .ports.cache import CacheKey

type NormalizedArguments = tuple[tuple[str, tuple[Hashable, ...]], ...]


class Operation(StrEnum):
    """Discriminator naming the DAO operation a cached value came from."""

    GET_PERSON = "get_person"
    GET_PEOPLE = "get_people"
    GET_PEOPLE_WITH_MULTIVALUED_ATTRIBUTES = "get_people_with_multivalued_attributes"
    GET_POSSIBLE_USER_ATTRIBUTE_NAMES = "get_possible_user_attribute_names"
    GET_AVAILABLE_QUERY_ATTRIBUTES = "get_available_query_attributes"


NO_ARGUMENTS: NormalizedArguments = ()


@dataclass(frozen=True, slots=True)
class AttributeBasedCacheKeyGenerator:
    """Derive ``(operation, normalized query)`` keys.

    ``cache_key_attributes`` restricts which query attributes take part in the
    key; ``None`` uses all of them. Single-person lookups are keyed as the
    query ``{username_attribute: [uid]}``.
    """

    username_attribute: str = "username"
    cache_key_attributes: frozenset[str] | None = None

    def for_person(self, uid: str) -> CacheKey:
        return (
            Operation.GET_PERSON,
            self.normalize(from_username(uid, self.username_attribute)),
        )

    def for_people(self, query: Mapping[str, object]) -> CacheKey:
        return (Operation.GET_PEOPLE, self.normalize(to_multivalued(query)))

    def for_multivalued_people(self, query: Query) -> CacheKey:
        return (Operation.GET_PEOPLE_WITH_MULTIVALUED_ATTRIBUTES, self.normalize(query))

    def for_discovery(self, operation: Operation) -> CacheKey:
        return (operation, NO_ARGUMENTS)

    def normalize(self, query: Query) -> NormalizedArguments:
        items = [
            (name, tuple(_hashable(value) for value in values))
            for name, values in query.items()
            if self.cache_key_attributes is None or name in self.cache_key_attributes
        ]
        return tuple(sorted(items, key=lambda item: item[0]))


def _hashable(value: object) -> Hashable:
    """Tag ``value`` with its type so ``True``, ``1`` and ``"1"`` stay distinct keys."""
    tag = type(value).__qualname__
    if isinstance(value, Hashable):
        try:
            hash(value)
        except TypeError:
            return (tag, repr(value))
        return (tag, value)
    return (tag, repr(value))
