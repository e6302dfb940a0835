from __future__ import annotations

import logging

import pytest

from persondir.domain.errors import MalformedResultError, TranslationError
from persondir.domain.ports.sources import Row  # noqa: TC001
from persondir.domain.query import (
    NO_QUERY,
    NoQuery,
    build_query,
    map_result_row,
    returned_columns,
)
from persondir.domain.source import AttributeSourceDao, SourceSettings


class FakeAdapter:
    """Adapter whose accumulator is a list of ``attribute=value`` strings."""

    def __init__(self, rows: list[Row] | None = None) -> None:
        self.rows = rows or []
        self.executed: list[list[str]] = []

    def append_to_query(
        self,
        builder: list[str] | None,
        attribute: str,
        values: list[object],
    ) -> list[str]:
        if attribute == "photo":
            raise TranslationError("binary attributes cannot be searched", attribute=attribute)
        clauses = builder if builder is not None else []
        clauses.extend(f"{attribute}={value}" for value in values)
        return clauses

    def run_query(self, builder: list[str] | None) -> list[Row] | NoQuery:
        if not builder:
            return NO_QUERY
        self.executed.append(builder)
        return self.rows

    def map_row(self, row: Row) -> object:
        return map_result_row(row, username_attribute="uid")

    def possible_attribute_names(self) -> set[str] | None:
        return None

    def available_query_attributes(self) -> set[str] | None:
        return None


def test_build_query_passes_names_through_without_mapping() -> None:
    builder = build_query(FakeAdapter(), {"uid": ["edalquist"], "mail": ["a", "b"]}, None)

    assert builder == ["uid=edalquist", "mail=a", "mail=b"]


def test_build_query_maps_and_skips_unknown_attributes(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="persondir.domain.query")

    builder = build_query(
        FakeAdapter(),
        {"username": ["edalquist"], "shoeSize": ["12"]},
        {"username": ("uid", "cn")},
    )

    assert builder == ["uid=edalquist", "cn=edalquist"]
    assert "shoeSize" in caplog.text


def test_build_query_skips_attributes_the_adapter_cannot_express(
    caplog: pytest.LogCaptureFixture,
) -> None:
    builder = build_query(FakeAdapter(), {"photo": [b"\x00"], "uid": ["jdoe"]}, None)

    assert builder == ["uid=jdoe"]
    assert any(record.levelno == logging.WARNING for record in caplog.records)


def test_empty_query_never_reaches_backend() -> None:
    adapter = FakeAdapter(rows=[{"uid": "edalquist"}])
    dao = AttributeSourceDao(
        adapter,
        SourceSettings(name="fake", username_attribute="uid", query_attribute_mapping={}),
    )

    assert dao.get_people({"uid": "edalquist"}) == []
    assert adapter.executed == []


def test_no_query_is_falsy() -> None:
    assert not NO_QUERY


def test_map_result_row_without_mapping_copies_columns() -> None:
    person = map_result_row({"uid": "jdoe", "mail": ["a@x", "b@x"]}, username_attribute="uid")

    assert person.name == "jdoe"
    assert person.attributes == {"uid": ["jdoe"], "mail": ["a@x", "b@x"]}


def test_map_result_row_renames_and_fills_missing_columns() -> None:
    person = map_result_row(
        {"uid": "jdoe", "mail": "jane@x", "ignored": 1},
        username_attribute="uid",
        result_attribute_mapping={"mail": ("email", "mail"), "telephoneNumber": ("phone",)},
    )

    assert person.attributes == {
        "email": ["jane@x"],
        "mail": ["jane@x"],
        "phone": [None],
        "uid": ["jdoe"],
    }


def test_map_result_row_raises_for_missing_mandatory_column() -> None:
    with pytest.raises(MalformedResultError) as excinfo:
        map_result_row(
            {"uid": "jdoe"},
            username_attribute="uid",
            result_attribute_mapping={"mail": ("mail",)},
            mandatory_columns=("mail",),
        )

    assert excinfo.value.column == "mail"


def test_map_result_row_reads_identifier_case_insensitively() -> None:
    person = map_result_row({"UID": "jdoe"}, username_attribute="uid", case_insensitive=True)

    assert person.name == "jdoe"


def test_returned_columns_adds_username() -> None:
    assert returned_columns(None, "uid") is None
    assert returned_columns({"mail": ("mail",)}, "uid") == ["mail", "uid"]
