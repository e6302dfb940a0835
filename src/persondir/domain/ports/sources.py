"""Ports implemented by attribute sources and the DAOs built on top of them."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from persondir.domain.attributes import Person, Query
    from persondir.domain.query import NoQuery

type Row = Mapping[str, object]


@runtime_checkable
class AttributeSourceAdapter[TBuilder](Protocol):
    """Backend-specific translation between abstract queries and backend rows.

    ``TBuilder`` is the backend accumulator: an LDAP filter, a SQL where clause,
    a list of HTTP parameters.
    """

    def append_to_query(
        self,
        builder: TBuilder | None,
        attribute: str,
        values: list[object],
    ) -> TBuilder: ...

    def run_query(self, builder: TBuilder | None) -> list[Row] | NoQuery: ...

    def map_row(self, row: Row) -> Person: ...

    def possible_attribute_names(self) -> set[str] | None: ...

    def available_query_attributes(self) -> set[str] | None: ...


@runtime_checkable
class PersonAttributeDao(Protocol):
    """Operations exposed to callers resolving person attributes."""

    def get_person(self, uid: str) -> Person | None: ...

    def get_people(self, query: Mapping[str, object]) -> list[Person]: ...

    def get_people_with_multivalued_attributes(self, query: Query) -> list[Person]: ...

    def get_possible_user_attribute_names(self) -> set[str] | None: ...

    def get_available_query_attributes(self) -> set[str] | None: ...
