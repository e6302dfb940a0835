"""Strategies for combining attribute bags from several sources or rows.

Every merger is a pure function of its inputs: neither bag is modified and the
returned bag holds the union of both key sets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .attributes import AttributeBag, Person, copy_bag

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


@runtime_checkable
class AttributeMerger(Protocol):
    """Combine an accumulated bag with a newly considered one."""

    def merge_attributes(
        self,
        to_modify: Mapping[str, list[object]],
        to_consider: Mapping[str, list[object]],
    ) -> AttributeBag: ...


@dataclass(frozen=True, slots=True)
class ReplacingAttributeMerger:
    """Keys from ``to_consider`` overwrite the accumulated values wholesale."""

    def merge_attributes(
        self,
        to_modify: Mapping[str, list[object]],
        to_consider: Mapping[str, list[object]],
    ) -> AttributeBag:
        merged = copy_bag(to_modify)
        for name, values in to_consider.items():
            merged[name] = list(values)
        return merged


@dataclass(frozen=True, slots=True)
class NoncollidingAttributeAdder:
    """Only keys missing from the accumulated bag are copied in; first writer wins."""

    def merge_attributes(
        self,
        to_modify: Mapping[str, list[object]],
        to_consider: Mapping[str, list[object]],
    ) -> AttributeBag:
        merged = copy_bag(to_modify)
        for name, values in to_consider.items():
            if name not in merged:
                merged[name] = list(values)
        return merged


@dataclass(frozen=True, slots=True)
class MultivaluedAttributeMerger:
    """Concatenate the value lists of keys present in both bags.

    With ``distinct_values`` the concatenated list keeps only the first
    occurrence of each value.
    """

    distinct_values: bool = False

    def merge_attributes(
        self,
        to_modify: Mapping[str, list[object]],
        to_consider: Mapping[str, list[object]],
    ) -> AttributeBag:
        merged = copy_bag(to_modify)
        for name, values in to_consider.items():
            combined = merged.setdefault(name, [])
            combined.extend(values)
            if self.distinct_values:
                merged[name] = _distinct(combined)
        return merged


def _distinct(values: Iterable[object]) -> list[object]:
    # equality based so unhashable values (lists, dicts) are supported
    unique: list[object] = []
    for value in values:
        if value not in unique:
            unique.append(value)
    return unique


MERGERS: dict[str, type[AttributeMerger]] = {
    "replacing": ReplacingAttributeMerger,
    "noncolliding": NoncollidingAttributeAdder,
    "multivalued": MultivaluedAttributeMerger,
}


def merger_for(name: str, *, distinct_values: bool = False) -> AttributeMerger:
    """Return the merger registered under ``name``.

    ``distinct_values`` only applies to the multivalued strategy and is ignored
    otherwise.
    """

    normalized = name.strip().lower()
    if normalized == "multivalued":
        return MultivaluedAttributeMerger(distinct_values=distinct_values)
    merger_cls = MERGERS.get(normalized)
    if merger_cls is None:
        known = ", ".join(sorted(MERGERS))
        raise ValueError(f"Unknown merge strategy {name!r}; expected one of: {known}")
    return merger_cls()


def identity_key(name: str, *, case_insensitive: bool = False) -> str:
    return name.casefold() if case_insensitive else name


def merge_people(
    merger: AttributeMerger,
    accumulated: Mapping[str, Person],
    incoming: Iterable[Person],
    *,
    case_insensitive: bool = False,
) -> dict[str, Person]:
    """Fold ``incoming`` people into ``accumulated``, keyed by identifier.

    People that share an identifier have their bags merged with ``merger``; the
    first-seen person keeps its name and position.
    """

    merged = dict(accumulated)
    for person in incoming:
        key = identity_key(person.name, case_insensitive=case_insensitive)
        existing = merged.get(key)
        if existing is None:
            merged[key] = Person(
                name=person.name,
                attributes=copy_bag(person.attributes),
                case_insensitive=person.case_insensitive,
            )
            continue
        merged[key] = Person(
            name=existing.name,
            attributes=merger.merge_attributes(existing.attributes, person.attributes),
            case_insensitive=existing.case_insensitive,
        )
    return merged


def merge_possible_names(*vocabularies: Iterable[str] | None) -> set[str] | None:
    """Union attribute vocabularies, returning ``None`` when none are declared."""

    names: set[str] | None = None
    for vocabulary in vocabularies:
        if vocabulary is None:
            continue
        if names is None:
            names = set()
        names.update(vocabulary)
    return names
