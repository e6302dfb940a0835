"""LDAP attribute source built on ldap3."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from ldap3 import ALL_ATTRIBUTES, BASE, LEVEL, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

from persondir.config.errors import ConfigurationError
from persondir.domain.errors import BackendError
from persondir.domain.query import NO_QUERY, NoQuery, map_result_row, returned_columns

from .filters import LogicalFilter, value_filter

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from persondir.config.ldap import LdapConfig
    from persondir.domain.attributes import Person
    from persondir.domain.ports.sources import Row
    from persondir.domain.source import SourceSettings

log = getLogger(__name__)

_SCOPES = {"BASE": BASE, "LEVEL": LEVEL, "SUBTREE": SUBTREE}
_SEARCH_RESULT_ENTRY = "searchResEntry"


class LdapConnection(Protocol):
    """Subset of ``ldap3.Connection`` used by the source."""

    response: list[dict[str, object]] | None

    def __enter__(self) -> LdapConnection: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> object: ...

    def search(
        self,
        search_base: str,
        search_filter: str,
        search_scope: str = ...,
        *,
        attributes: object = ...,
        size_limit: int = ...,
        time_limit: int = ...,
    ) -> object: ...


def default_connection_factory(config: LdapConfig) -> Callable[[], LdapConnection]:
    server = Server(
        config.url,
        use_ssl=config.use_ssl,
        connect_timeout=config.connect_timeout_seconds,
    )

    def factory() -> LdapConnection:
        return Connection(
            server,
            user=config.bind_dn,
            password=config.bind_password,
            read_only=True,
            raise_exceptions=True,
            receive_timeout=config.receive_timeout_seconds,
        )

    return factory


class LdapAttributeSource:
    """Translate queries into LDAP filters and entries into people."""

    def __init__(
        self,
        *,
        config: LdapConfig,
        settings: SourceSettings,
        connection_factory: Callable[[], LdapConnection] | None = None,
    ) -> None:
        if connection_factory is None:
            if not config.url:
                raise ConfigurationError(f"LDAP source '{settings.name}' needs a server URL")
            connection_factory = default_connection_factory(config)
        if config.search_scope not in _SCOPES:
            raise ConfigurationError(f"Unknown LDAP search scope: {config.search_scope}")
        self.config = config
        self.settings = settings
        self._connection_factory = connection_factory

    def append_to_query(
        self,
        builder: LogicalFilter | None,
        attribute: str,
        values: list[object],
    ) -> LogicalFilter:
        clauses = [value_filter(attribute, value) for value in values]
        if builder is None:
            builder = LogicalFilter(self.settings.query_type)
        for clause in clauses:
            builder.append(clause)
        return builder

    def run_query(self, builder: LogicalFilter | None) -> list[Row] | NoQuery:
        search_filter = builder.encode() if builder is not None else ""
        if not search_filter.strip():
            return NO_QUERY

        attributes: object = ALL_ATTRIBUTES
        if self.config.set_returning_attributes:
            columns = returned_columns(
                self.settings.result_attribute_mapping,
                self.settings.username_attribute,
            )
            if columns is not None:
                attributes = columns

        log.debug("LDAP search in %r: %s", self.config.base_dn, search_filter)
        try:
            with self._connection_factory() as connection:
                connection.search(
                    self.config.base_dn,
                    search_filter,
                    _SCOPES[self.config.search_scope],
                    attributes=attributes,
                    size_limit=self.config.size_limit,
                    time_limit=self.config.time_limit_seconds,
                )
                entries = list(connection.response or [])
        except LDAPException as exc:
            raise BackendError(
                f"LDAP search failed for source '{self.settings.name}': {exc}",
                source=self.settings.name,
            ) from exc

        return [
            dict(entry["attributes"])  # pyright: ignore[reportArgumentType]
            for entry in entries
            if entry.get("type") == _SEARCH_RESULT_ENTRY
        ]

    def map_row(self, row: Row) -> Person:
        # LDAP attribute names are case-insensitive
        return map_result_row(
            row,
            username_attribute=self.settings.username_attribute,
            result_attribute_mapping=self.settings.result_attribute_mapping,
            mandatory_columns=self.settings.mandatory_columns,
            case_insensitive=True,
        )

    def possible_attribute_names(self) -> set[str] | None:
        return self.settings.possible_attribute_names()

    def available_query_attributes(self) -> set[str] | None:
        return self.settings.available_query_attributes()


if TYPE_CHECKING:
    from typing import cast

    from persondir.domain.ports.sources import AttributeSourceAdapter

    _source_check: AttributeSourceAdapter[LogicalFilter] = LdapAttributeSource(
        config=cast("LdapConfig", object()),
        settings=cast("SourceSettings", object()),
        connection_factory=cast("Callable[[], LdapConnection]", object()),
    )
