"""Attribute source backed by rows held in memory."""

from __future__ import annotations

from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING

from persondir.domain.attributes import find_attribute, to_values
from persondir.domain.query import NO_QUERY, NoQuery, QueryType, map_result_row

if TYPE_CHECKING:
    from collections.abc import Iterable

    from persondir.domain.attributes import Person
    from persondir.domain.ports.sources import Row
    from persondir.domain.source import SourceSettings


@dataclass(slots=True)
class StaticQuery:
    query_type: QueryType
    clauses: list[tuple[str, object]] = field(default_factory=list)


class StaticAttributeSource:
    """Match queries against a fixed list of rows.

    Every query value becomes its own clause, joined by the source query type,
    so several values of one attribute behave like repeated LDAP or SQL terms.
    A ``*`` inside a string query value matches like a shell wildcard.
    """

    def __init__(self, rows: Iterable[Row], settings: SourceSettings) -> None:
        self.rows = [dict(row) for row in rows]
        self.settings = settings

    def append_to_query(
        self,
        builder: StaticQuery | None,
        attribute: str,
        values: list[object],
    ) -> StaticQuery:
        if builder is None:
            builder = StaticQuery(query_type=self.settings.query_type)
        builder.clauses.extend((attribute, value) for value in values)
        return builder

    def run_query(self, builder: StaticQuery | None) -> list[Row] | NoQuery:
        if builder is None or not builder.clauses:
            return NO_QUERY
        combine = all if builder.query_type is QueryType.AND else any
        return [
            row
            for row in self.rows
            if combine(self._matches(row, name, value) for name, value in builder.clauses)
        ]

    def map_row(self, row: Row) -> Person:
        return map_result_row(
            row,
            username_attribute=self.settings.username_attribute,
            result_attribute_mapping=self.settings.result_attribute_mapping,
            mandatory_columns=self.settings.mandatory_columns,
            case_insensitive=self.settings.case_insensitive,
        )

    def possible_attribute_names(self) -> set[str] | None:
        return self.settings.possible_attribute_names()

    def available_query_attributes(self) -> set[str] | None:
        return self.settings.available_query_attributes()

    def _matches(self, row: Row, name: str, wanted: object) -> bool:
        key = find_attribute(row, name, case_insensitive=self.settings.case_insensitive)
        if key is None:
            return False
        stored = to_values(row[key])
        return any(_value_matches(value, wanted) for value in stored)


def _value_matches(value: object, candidate: object) -> bool:
    if isinstance(candidate, str) and "*" in candidate:
        return isinstance(value, str) and fnmatchcase(value, candidate)
    return value == candidate


if TYPE_CHECKING:
    from typing import cast

    from persondir.domain.ports.sources import AttributeSourceAdapter

    _settings_stub = cast("SourceSettings", object())
    _adapter_check: AttributeSourceAdapter[StaticQuery] = StaticAttributeSource((), _settings_stub)
