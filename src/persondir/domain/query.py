"""Helpers shared by every attribute source adapter.

Adapters only know how to fold one backend attribute into their own query
accumulator and how to read one row. The functions here drive that contract:
they pick the query attributes a source understands, skip values it cannot
express, and remap backend rows onto the exposed attribute vocabulary.
"""

from __future__ import annotations

from enum import Enum, StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from .attributes import AttributeBag, Person, find_attribute, to_values
from .errors import MalformedResultError, TranslationError

if TYPE_CHECKING:
    from collections.abc import Collection, Mapping

    from .attributes import AttributeMapping, Query
    from .ports.sources import AttributeSourceAdapter, Row

log = getLogger(__name__)


class QueryType(StrEnum):
    """How the clauses of one backend query are joined."""

    AND = "and"
    OR = "or"


class NoQuery(Enum):
    """Signal that the accumulated query is empty and must not be executed."""

    NO_QUERY = "no-query"

    def __bool__(self) -> bool:
        return False


NO_QUERY = NoQuery.NO_QUERY


def build_query[TBuilder](
    adapter: AttributeSourceAdapter[TBuilder],
    query: Query,
    query_attribute_mapping: AttributeMapping | None,
) -> TBuilder | None:
    """Fold every query attribute the source recognises into its accumulator.

    With no mapping configured, query attribute names are passed through
    unchanged. Returns ``None`` when nothing could be appended.
    """

    builder: TBuilder | None = None
    for attribute, values in query.items():
        if query_attribute_mapping is None:
            backend_names: tuple[str, ...] = (attribute,)
        else:
            mapped = query_attribute_mapping.get(attribute)
            if mapped is None:
                log.debug("Skipping unmapped query attribute %s", attribute)
                continue
            backend_names = mapped
        for backend_name in backend_names:
            try:
                builder = adapter.append_to_query(builder, backend_name, list(values))
            except TranslationError as exc:
                log.warning("Skipping query attribute %s: %s", backend_name, exc)
    return builder


def map_result_row(
    row: Row,
    *,
    username_attribute: str,
    result_attribute_mapping: AttributeMapping | None = None,
    mandatory_columns: Collection[str] = (),
    case_insensitive: bool = False,
) -> Person:
    """Translate one backend row into a person.

    Backend columns are renamed through ``result_attribute_mapping``; columns
    it does not name are dropped. A configured column missing from the row is
    recorded as ``[None]`` unless it is mandatory.
    """

    for column in mandatory_columns:
        if find_attribute(row, column, case_insensitive=case_insensitive) is None:
            raise MalformedResultError(
                f"Mandatory column '{column}' missing from result", column=column
            )

    attributes: AttributeBag = {}
    if result_attribute_mapping is None:
        for column, value in row.items():
            attributes[column] = to_values(value)
    else:
        for column, exposed_names in result_attribute_mapping.items():
            key = find_attribute(row, column, case_insensitive=case_insensitive)
            values = to_values(row[key]) if key is not None else [None]
            for exposed_name in exposed_names:
                attributes[exposed_name] = list(values)

    if find_attribute(attributes, username_attribute, case_insensitive=case_insensitive) is None:
        key = find_attribute(row, username_attribute, case_insensitive=case_insensitive)
        if key is not None:
            attributes[username_attribute] = to_values(row[key])

    return Person.from_attributes(
        attributes,
        username_attribute=username_attribute,
        case_insensitive=case_insensitive,
    )


def returned_columns(
    result_attribute_mapping: Mapping[str, object] | None,
    username_attribute: str,
) -> list[str] | None:
    """Backend columns a source needs to request, or ``None`` for all of them."""

    if result_attribute_mapping is None:
        return None
    columns = list(result_attribute_mapping)
    if username_attribute not in columns:
        columns.append(username_attribute)
    return columns
