"""Person attribute DAO driving a single backend adapter."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .aggregation import group_people
from .attributes import from_username, to_multivalued
from .errors import MalformedResultError
from .query import NO_QUERY, QueryType, build_query

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .attributes import AttributeMapping, Person, Query
    from .ports.sources import AttributeSourceAdapter

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SourceSettings:
    """Translation settings shared by every kind of attribute source."""

    name: str
    username_attribute: str = "username"
    query_attribute_mapping: AttributeMapping | None = None
    result_attribute_mapping: AttributeMapping | None = None
    mandatory_columns: frozenset[str] = field(default_factory=frozenset)
    query_type: QueryType = QueryType.AND
    case_insensitive: bool = False
    enabled: bool = True

    def possible_attribute_names(self) -> set[str] | None:
        if self.result_attribute_mapping is None:
            return None
        names = {name for names in self.result_attribute_mapping.values() for name in names}
        names.add(self.username_attribute)
        return names

    def available_query_attributes(self) -> set[str] | None:
        if self.query_attribute_mapping is None:
            return None
        return set(self.query_attribute_mapping)


class AttributeSourceDao[TBuilder]:
    """Run abstract queries against one adapter and return the people it maps."""

    def __init__(
        self,
        adapter: AttributeSourceAdapter[TBuilder],
        settings: SourceSettings,
    ) -> None:
        self.adapter = adapter
        self.settings = settings

    @property
    def name(self) -> str:
        return self.settings.name

    def get_person(self, uid: str) -> Person | None:
        people = self.get_people_with_multivalued_attributes(
            from_username(uid, self.settings.username_attribute)
        )
        if not people:
            return None
        if len(people) > 1:
            raise MalformedResultError(
                f"Source '{self.name}' returned {len(people)} people for '{uid}'"
            )
        return people[0]

    def get_people(self, query: Mapping[str, object]) -> list[Person]:
        return self.get_people_with_multivalued_attributes(to_multivalued(query))

    def get_people_with_multivalued_attributes(self, query: Query) -> list[Person]:
        if not self.settings.enabled:
            log.debug("Source %s is disabled", self.name)
            return []

        builder = build_query(self.adapter, query, self.settings.query_attribute_mapping)
        rows = self.adapter.run_query(builder)
        if rows is NO_QUERY:
            log.debug("Source %s has no query for %s", self.name, sorted(query))
            return []

        people = group_people(
            (self.adapter.map_row(row) for row in rows),
            case_insensitive=self.settings.case_insensitive,
        )
        log.debug("Source %s returned %d people", self.name, len(people))
        return people

    def get_possible_user_attribute_names(self) -> set[str] | None:
        return self.adapter.possible_attribute_names()

    def get_available_query_attributes(self) -> set[str] | None:
        return self.adapter.available_query_attributes()


if TYPE_CHECKING:
    from typing import cast

    from .ports.sources import PersonAttributeDao

    _adapter_stub = cast("AttributeSourceAdapter[object]", object())
    _dao_check: PersonAttributeDao = AttributeSourceDao(_adapter_stub, SourceSettings(name="check"))
