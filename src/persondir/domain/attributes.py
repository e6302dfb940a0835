"""Attribute bags, people and query normalisation.

An attribute bag maps attribute names to ordered value lists. Every value is
kept in a list, even when the backend returned a scalar, so an attribute that
was present with no values (``[]``) stays distinguishable from one that was
never returned.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from .errors import MalformedResultError

type AttributeValues = list[object]
type AttributeBag = dict[str, AttributeValues]
type Query = dict[str, AttributeValues]
type AttributeMapping = dict[str, tuple[str, ...]]


def to_values(value: object) -> AttributeValues:
    """Return ``value`` as a value list.

    ``None`` becomes ``[None]``; strings, bytes and mappings are single opaque
    values; other iterables are copied into a list.
    """

    if value is None or isinstance(value, str | bytes | bytearray | Mapping):
        return [value]
    if isinstance(value, Iterable):
        return list(value)
    return [value]


def to_multivalued(query: Mapping[str, object]) -> Query:
    """Normalise a scalar query (``name -> value``) into its multi-valued form."""

    return {name: to_values(value) for name, value in query.items()}


def from_username(username: str, username_attribute: str) -> Query:
    return {username_attribute: [username]}


def copy_bag(bag: Mapping[str, Iterable[object]]) -> AttributeBag:
    return {name: list(values) for name, values in bag.items()}


def add_result(bag: AttributeBag, name: str, values: Iterable[object]) -> None:
    """Append ``values`` to ``bag[name]``, inserting the key when missing."""

    bag.setdefault(name, []).extend(values)


def find_attribute(
    bag: Mapping[str, object],
    name: str,
    *,
    case_insensitive: bool = False,
) -> str | None:
    """Return the key in ``bag`` that matches ``name``."""

    if name in bag:
        return name
    if not case_insensitive:
        return None
    folded = name.casefold()
    for key in bag:
        if key.casefold() == folded:
            return key
    return None


def parse_attribute_mapping(
    mapping: Mapping[str, str | Iterable[str] | None] | None,
) -> AttributeMapping | None:
    """Normalise an attribute-name mapping from configuration.

    Values may be a single name, a collection of names, or ``None`` to keep the
    source name unchanged.
    """

    if mapping is None:
        return None
    parsed: AttributeMapping = {}
    for source_name, target in mapping.items():
        if target is None:
            names: list[str] = [source_name]
        elif isinstance(target, str):
            names = [target]
        else:
            names = []
            for name in target:
                if not isinstance(name, str):
                    raise TypeError(f"Attribute mapping for {source_name!r} must contain strings")
                if name not in names:
                    names.append(name)
        parsed[source_name] = tuple(names)
    return parsed


@dataclass(frozen=True, slots=True)
class Person:
    """A resolved identity: an identifier plus its attribute bag."""

    name: str
    attributes: AttributeBag = field(default_factory=dict)
    case_insensitive: bool = field(default=False, compare=False)

    @classmethod
    def from_attributes(
        cls,
        attributes: AttributeBag,
        *,
        username_attribute: str,
        case_insensitive: bool = False,
    ) -> Person:
        """Build a person whose identifier is read from ``attributes``."""

        key = find_attribute(attributes, username_attribute, case_insensitive=case_insensitive)
        values = attributes.get(key, []) if key is not None else []
        identifier = next((value for value in values if value is not None), None)
        if identifier is None:
            raise MalformedResultError(
                f"No identifier attribute named '{username_attribute}' in result",
                column=username_attribute,
            )
        return cls(
            name=str(identifier),
            attributes=attributes,
            case_insensitive=case_insensitive,
        )

    def get_attribute_values(self, name: str) -> AttributeValues | None:
        key = find_attribute(self.attributes, name, case_insensitive=self.case_insensitive)
        if key is None:
            return None
        return self.attributes[key]

    def get_attribute_value(self, name: str) -> object | None:
        values = self.get_attribute_values(name)
        if not values:
            return None
        return values[0]
