"""Composite DAO merging the results of several attribute sources.

Every source is queried for each resolution. Results are collected first and
then folded in configured order, so order-sensitive mergers keep first-to-last
precedence even when sources run on a thread pool.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from .attributes import Person, from_username, to_multivalued
from .errors import PersonDirectoryError
from .merge import (
    MultivaluedAttributeMerger,
    identity_key,
    merge_people,
    merge_possible_names,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .attributes import AttributeBag, Query
    from .merge import AttributeMerger
    from .ports.sources import PersonAttributeDao

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SourceBinding:
    """One source of a composite resolution.

    A failing ``required`` source fails the whole resolution; other sources
    are skipped with a warning.
    """

    name: str
    dao: PersonAttributeDao
    required: bool = False


class MergingPersonAttributeDao:
    """Query every configured source and merge what they return."""

    def __init__(
        self,
        sources: Sequence[SourceBinding],
        *,
        merger: AttributeMerger | None = None,
        username_attribute: str = "username",
        case_insensitive: bool = False,
        max_workers: int = 1,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.sources = tuple(sources)
        self.merger = merger or MultivaluedAttributeMerger()
        self.username_attribute = username_attribute
        self.case_insensitive = case_insensitive
        self.max_workers = max_workers

    def get_person(self, uid: str) -> Person | None:
        query = from_username(uid, self.username_attribute)
        wanted = identity_key(uid, case_insensitive=self.case_insensitive)

        attributes: AttributeBag | None = None
        for people in self._collect(query):
            for person in people:
                if identity_key(person.name, case_insensitive=self.case_insensitive) != wanted:
                    continue
                if attributes is None:
                    attributes = {}
                attributes = self.merger.merge_attributes(attributes, person.attributes)

        if attributes is None:
            log.debug("No source returned attributes for %s", uid)
            return None
        return Person(name=uid, attributes=attributes, case_insensitive=self.case_insensitive)

    def get_people(self, query: Mapping[str, object]) -> list[Person]:
        return self.get_people_with_multivalued_attributes(to_multivalued(query))

    def get_people_with_multivalued_attributes(self, query: Query) -> list[Person]:
        merged: dict[str, Person] = {}
        for people in self._collect(query):
            merged = merge_people(
                self.merger,
                merged,
                people,
                case_insensitive=self.case_insensitive,
            )
        return list(merged.values())

    def get_possible_user_attribute_names(self) -> set[str] | None:
        return merge_possible_names(
            *(source.dao.get_possible_user_attribute_names() for source in self.sources)
        )

    def get_available_query_attributes(self) -> set[str] | None:
        return merge_possible_names(
            *(source.dao.get_available_query_attributes() for source in self.sources)
        )

    def _collect(self, query: Query) -> list[list[Person]]:
        """Return each source's people in configured source order."""

        if self.max_workers == 1 or len(self.sources) < 2:
            return [self._query_source(source, query) for source in self.sources]

        workers = min(self.max_workers, len(self.sources))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self._query_source, source, query) for source in self.sources
            ]
            return [future.result() for future in futures]

    @staticmethod
    def _query_source(source: SourceBinding, query: Query) -> list[Person]:
        try:
            return source.dao.get_people_with_multivalued_attributes(query)
        except PersonDirectoryError as exc:
            if source.required:
                log.error(f"Required source {source.name} failed: {exc}")
                raise
            log.warning("Skipping source %s: %s", source.name, exc)
            return []


if TYPE_CHECKING:
    from .ports.sources import PersonAttributeDao as _PersonAttributeDao

    _merging_check: _PersonAttributeDao = MergingPersonAttributeDao(())
