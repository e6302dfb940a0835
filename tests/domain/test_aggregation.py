from __future__ import annotations

import pytest

from persondir.domain.aggregation import aggregate_rows, group_people, map_name_value_row
from persondir.domain.attributes import Person
from persondir.domain.errors import MalformedResultError
from persondir.domain.merge import ReplacingAttributeMerger

NAME_VALUE_COLUMNS = {"attr": ("val",)}


def test_aggregate_rows_groups_by_identifier_in_first_seen_order() -> None:
    rows = [
        {"user": "a", "attr": "name.given", "val": "joe"},
        {"user": "a", "attr": "name.family", "val": "student"},
        {"user": "b", "attr": "name.given", "val": "bob"},
    ]

    people = aggregate_rows(rows, username_column="user", name_value_columns=NAME_VALUE_COLUMNS)

    assert [person.name for person in people] == ["a", "b"]
    assert people[0].attributes == {"name.given": ["joe"], "name.family": ["student"]}
    assert people[1].attributes == {"name.given": ["bob"]}


def test_aggregate_rows_collects_repeated_attribute_values() -> None:
    rows = [
        {"user": "a", "attr": "mail", "val": "one@x"},
        {"user": "b", "attr": "mail", "val": "b@x"},
        {"user": "a", "attr": "mail", "val": "two@x"},
        {"user": "a", "attr": "mail", "val": None},
    ]

    people = aggregate_rows(rows, username_column="user", name_value_columns=NAME_VALUE_COLUMNS)

    assert people[0].attributes == {"mail": ["one@x", "two@x", None]}


def test_aggregate_rows_adds_username_attribute_once() -> None:
    rows = [
        {"user": "a", "attr": "mail", "val": "a@x"},
        {"user": "a", "attr": "cn", "val": "Alice"},
    ]

    people = aggregate_rows(
        rows,
        username_column="user",
        name_value_columns=NAME_VALUE_COLUMNS,
        username_attribute="uid",
    )

    assert people[0].attributes == {"mail": ["a@x"], "cn": ["Alice"], "uid": ["a"]}


def test_map_name_value_row_supports_several_value_columns() -> None:
    person = map_name_value_row(
        {"user": "a", "attr": "phone", "home": "555-1", "work": "555-2"},
        username_column="user",
        name_value_columns={"attr": ("home", "work")},
    )

    assert person.attributes == {"phone": ["555-1", "555-2"]}


@pytest.mark.parametrize(
    ("row", "column", "message"),
    [
        ({"attr": "mail", "val": "x"}, "user", "No userName column named 'user'"),
        ({"user": None, "attr": "mail", "val": "x"}, "user", "No userName column named 'user'"),
        ({"user": "a", "val": "x"}, "attr", "No attribute key column named 'attr'"),
        ({"user": "a", "attr": "mail"}, "val", "No attribute value column named 'val'"),
    ],
)
def test_map_name_value_row_rejects_missing_columns(
    row: dict[str, object],
    column: str,
    message: str,
) -> None:
    with pytest.raises(MalformedResultError, match=message) as excinfo:
        map_name_value_row(row, username_column="user", name_value_columns=NAME_VALUE_COLUMNS)

    assert excinfo.value.column == column


def test_group_people_accepts_custom_merger() -> None:
    people = group_people(
        [Person("a", {"mail": ["old@x"]}), Person("a", {"mail": ["new@x"]})],
        ReplacingAttributeMerger(),
    )

    assert people == [Person("a", {"mail": ["new@x"]})]
