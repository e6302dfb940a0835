"""LDAP search filter construction (RFC 4515 string encoding)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from ldap3.utils.conv import escape_bytes, escape_filter_chars

from persondir.domain.errors import TranslationError
from persondir.domain.query import QueryType

WILDCARD = "*"


class LdapFilter(Protocol):
    def encode(self) -> str: ...


def _escape(value: object) -> str:
    if isinstance(value, bytes | bytearray):
        return escape_bytes(bytes(value))
    return escape_filter_chars(str(value))


@dataclass(frozen=True, slots=True)
class EqualsFilter:
    attribute: str
    value: object

    def encode(self) -> str:
        return f"({self.attribute}={_escape(self.value)})"


@dataclass(frozen=True, slots=True)
class LikeFilter:
    """Substring match; every ``*`` in ``value`` stays a wildcard."""

    attribute: str
    value: str

    def encode(self) -> str:
        pattern = WILDCARD.join(escape_filter_chars(part) for part in self.value.split(WILDCARD))
        return f"({self.attribute}={pattern})"


@dataclass(slots=True)
class LogicalFilter:
    """AND/OR group of clauses.

    A single clause encodes on its own and an empty group encodes to ``""``.
    """

    query_type: QueryType = QueryType.AND
    filters: list[LdapFilter] = field(default_factory=list)

    def append(self, ldap_filter: LdapFilter) -> None:
        self.filters.append(ldap_filter)

    def encode(self) -> str:
        if not self.filters:
            return ""
        if len(self.filters) == 1:
            return self.filters[0].encode()
        operator = "&" if self.query_type is QueryType.AND else "|"
        return f"({operator}{''.join(item.encode() for item in self.filters)})"


def value_filter(attribute: str, value: object) -> LdapFilter:
    """Return an equality clause, or a substring clause when ``value`` holds ``*``."""

    if value is None:
        raise TranslationError(
            f"Cannot search LDAP attribute '{attribute}' for None",
            attribute=attribute,
        )
    if isinstance(value, str) and WILDCARD in value:
        return LikeFilter(attribute, value)
    return EqualsFilter(attribute, value)
