from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, insert
from sqlalchemy.engine import Engine  # noqa: TC002

from persondir.adapters.static import StaticAttributeSource
from persondir.domain.attributes import Person
from persondir.domain.source import AttributeSourceDao, SourceSettings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from persondir.domain.attributes import Query


class RecordingDao:
    """Person attribute DAO returning canned people and counting calls."""

    def __init__(
        self,
        people: list[Person] | None = None,
        *,
        possible_names: set[str] | None = None,
        query_attributes: set[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.people = people or []
        self.possible_names = possible_names
        self.query_attributes = query_attributes
        self.error = error
        self.calls: list[str] = []

    def get_person(self, uid: str) -> Person | None:
        self.calls.append("get_person")
        self._maybe_fail()
        return next((person for person in self.people if person.name == uid), None)

    def get_people(self, query: Mapping[str, object]) -> list[Person]:
        self.calls.append("get_people")
        self._maybe_fail()
        return list(self.people)

    def get_people_with_multivalued_attributes(self, query: Query) -> list[Person]:
        self.calls.append("get_people_with_multivalued_attributes")
        self._maybe_fail()
        return list(self.people)

    def get_possible_user_attribute_names(self) -> set[str] | None:
        self.calls.append("get_possible_user_attribute_names")
        return self.possible_names

    def get_available_query_attributes(self) -> set[str] | None:
        self.calls.append("get_available_query_attributes")
        return self.query_attributes

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error


@pytest.fixture
def recording_dao_factory() -> Callable[..., RecordingDao]:
    return RecordingDao


@pytest.fixture
def static_dao_factory() -> Callable[..., AttributeSourceDao[object]]:
    def factory(
        rows: list[dict[str, object]],
        *,
        name: str = "static",
        **settings: object,
    ) -> AttributeSourceDao[object]:
        source_settings = SourceSettings(name=name, **settings)  # type: ignore[arg-type]
        return AttributeSourceDao(StaticAttributeSource(rows, source_settings), source_settings)

    return factory


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    metadata = MetaData()
    people = Table(
        "people",
        metadata,
        Column("uid", String, primary_key=True),
        Column("given_name", String),
        Column("mail", String),
        Column("age", Integer),
    )
    attributes = Table(
        "person_attributes",
        metadata,
        Column("id", Integer, primary_key=True),
        Column("uid", String),
        Column("attr_name", String),
        Column("attr_value", String),
    )
    metadata.create_all(engine)
    with engine.begin() as connection:
        connection.execute(
            insert(people),
            [
                {"uid": "awp9", "given_name": "Andrew", "mail": "awp9@example.edu", "age": 41},
                {"uid": "edalquist", "given_name": "Eric", "mail": "ed@example.edu", "age": 39},
                {"uid": "jdoe", "given_name": "Jane", "mail": "jane_doe@example.edu", "age": 27},
            ],
        )
        connection.execute(
            insert(attributes),
            [
                {"uid": "awp9", "attr_name": "mail", "attr_value": "awp9@example.edu"},
                {"uid": "awp9", "attr_name": "mail", "attr_value": "andrew@example.edu"},
                {"uid": "awp9", "attr_name": "shirt", "attr_value": "blue"},
                {"uid": "edalquist", "attr_name": "mail", "attr_value": "ed@example.edu"},
            ],
        )
    try:
        yield engine
    finally:
        engine.dispose()
