"""Group one-row-per-attribute result sets into one person per identifier.

Some stores keep attributes in a ``(user, attribute name, attribute value)``
table. Each row then contributes one name/value pair, and all rows sharing a
user collapse into a single attribute bag with multivalued semantics.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .attributes import AttributeBag, Person, add_result, find_attribute
from .errors import MalformedResultError
from .merge import MultivaluedAttributeMerger, merge_people

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .attributes import AttributeMapping
    from .merge import AttributeMerger
    from .ports.sources import Row


def map_name_value_row(
    row: Row,
    *,
    username_column: str,
    name_value_columns: AttributeMapping,
    case_insensitive: bool = False,
) -> Person:
    """Translate a single name/value row into a person holding those pairs."""

    user_name = row.get(username_column)
    if user_name is None:
        raise MalformedResultError(
            f"No userName column named '{username_column}' exists in result",
            column=username_column,
        )

    attributes: AttributeBag = {}
    for name_column, value_columns in name_value_columns.items():
        if name_column not in row:
            raise MalformedResultError(
                f"No attribute key column named '{name_column}' exists in result",
                column=name_column,
            )
        attribute_name = str(row[name_column])

        values: list[object] = []
        for value_column in value_columns:
            if value_column not in row:
                raise MalformedResultError(
                    f"No attribute value column named '{value_column}' exists in result",
                    column=value_column,
                )
            values.append(row[value_column])
        add_result(attributes, attribute_name, values)

    return Person(name=str(user_name), attributes=attributes, case_insensitive=case_insensitive)


def group_people(
    people: Iterable[Person],
    merger: AttributeMerger | None = None,
    *,
    case_insensitive: bool = False,
) -> list[Person]:
    """Merge people sharing an identifier, keeping first-seen order."""

    grouped = merge_people(
        merger or MultivaluedAttributeMerger(),
        {},
        people,
        case_insensitive=case_insensitive,
    )
    return list(grouped.values())


def aggregate_rows(
    rows: Iterable[Row],
    *,
    username_column: str,
    name_value_columns: Mapping[str, tuple[str, ...]],
    username_attribute: str | None = None,
    case_insensitive: bool = False,
) -> list[Person]:
    """Build one person per distinct identifier from name/value rows.

    With ``username_attribute`` set, every grouped bag also holds the
    identifier under that name.
    """

    mapping = dict(name_value_columns)
    people = group_people(
        (
            map_name_value_row(
                row,
                username_column=username_column,
                name_value_columns=mapping,
                case_insensitive=case_insensitive,
            )
            for row in rows
        ),
        case_insensitive=case_insensitive,
    )
    if username_attribute is not None:
        for person in people:
            if find_attribute(
                person.attributes, username_attribute, case_insensitive=case_insensitive
            ) is None:
                person.attributes[username_attribute] = [person.name]
    return people
