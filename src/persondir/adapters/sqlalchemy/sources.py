"""Attribute sources backed by SQLAlchemy Core queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import and_, create_engine, literal_column, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import column, table

from persondir.config.errors import ConfigurationError
from persondir.config.sql import get_database_uri
from persondir.domain.aggregation import aggregate_rows
from persondir.domain.errors import BackendError
from persondir.domain.query import NO_QUERY, NoQuery, QueryType, map_result_row

if TYPE_CHECKING:
    from sqlalchemy import ColumnElement
    from sqlalchemy.engine import Engine

    from persondir.config.sql import SqlConfig
    from persondir.domain.attributes import AttributeMapping, Person
    from persondir.domain.ports.sources import Row
    from persondir.domain.source import SourceSettings

log = getLogger(__name__)

WILDCARD = "*"


@dataclass(slots=True)
class WhereClause:
    """Accumulated comparisons for one query, joined by ``query_type``."""

    query_type: QueryType = QueryType.AND
    criteria: list[ColumnElement[bool]] = field(default_factory=list)

    def compile(self) -> ColumnElement[bool]:
        if self.query_type is QueryType.AND:
            return and_(*self.criteria)
        return or_(*self.criteria)


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped.replace(WILDCARD, "%")


def value_criterion(attribute: str, value: object) -> ColumnElement[bool]:
    target = column(attribute)
    if value is None:
        return target.is_(None)
    if isinstance(value, str) and WILDCARD in value:
        return target.like(_like_pattern(value), escape="\\")
    return target == value


class _SqlAttributeSource:
    """Query building and execution shared by both table layouts."""

    def __init__(
        self,
        *,
        config: SqlConfig,
        settings: SourceSettings,
        engine: Engine | None = None,
    ) -> None:
        if engine is None:
            database_uri = config.database_uri or get_database_uri()
            if not database_uri:
                raise ConfigurationError(
                    f"SQL source '{settings.name}' needs an engine or a database URI"
                )
            engine = create_engine(database_uri)
        self.config = config
        self.settings = settings
        self.engine = engine

    def append_to_query(
        self,
        builder: WhereClause | None,
        attribute: str,
        values: list[object],
    ) -> WhereClause:
        if builder is None:
            builder = WhereClause(query_type=self.settings.query_type)
        builder.criteria.extend(value_criterion(attribute, value) for value in values)
        return builder

    def run_query(self, builder: WhereClause | None) -> list[Row] | NoQuery:
        if builder is None or not builder.criteria:
            return NO_QUERY

        source_table = table(self.config.table, schema=self.config.schema)
        stmt = select(literal_column("*")).select_from(source_table).where(builder.compile())
        log.debug("SQL query for source %s: %s", self.settings.name, stmt)
        try:
            with self.engine.connect() as connection:
                return [dict(row) for row in connection.execute(stmt).mappings()]
        except SQLAlchemyError as exc:
            raise BackendError(
                f"SQL query failed for source '{self.settings.name}': {exc}",
                source=self.settings.name,
            ) from exc

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


class SingleRowSqlAttributeSource(_SqlAttributeSource):
    """Source for tables holding one row per person."""


class MultiRowSqlAttributeSource(_SqlAttributeSource):
    """Source for ``(user, attribute name, attribute value)`` tables.

    Rows sharing an identifier are grouped into one attribute bag before
    they are mapped, so each person reaches the DAO as a single row.
    """

    def __init__(
        self,
        *,
        config: SqlConfig,
        settings: SourceSettings,
        engine: Engine | None = None,
    ) -> None:
        if not config.name_value_columns:
            raise ConfigurationError(
                f"SQL source '{settings.name}' needs name/value column mappings"
            )
        super().__init__(config=config, settings=settings, engine=engine)
        self.name_value_columns: AttributeMapping = dict(config.name_value_columns)
        self.username_column = config.username_column or settings.username_attribute

    def run_query(self, builder: WhereClause | None) -> list[Row] | NoQuery:
        rows = super().run_query(builder)
        if rows is NO_QUERY:
            return rows
        people = aggregate_rows(
            rows,
            username_column=self.username_column,
            name_value_columns=self.name_value_columns,
            username_attribute=self.settings.username_attribute,
            case_insensitive=self.settings.case_insensitive,
        )
        return [person.attributes for person in people]


if TYPE_CHECKING:
    from typing import cast

    from persondir.domain.ports.sources import AttributeSourceAdapter

    _engine_stub = cast("Engine", object())
    _settings_stub = cast("SourceSettings", object())
    _config_stub = cast("SqlConfig", object())
    _single_check: AttributeSourceAdapter[WhereClause] = SingleRowSqlAttributeSource(
        config=_config_stub, settings=_settings_stub, engine=_engine_stub
    )
    _multi_check: AttributeSourceAdapter[WhereClause] = MultiRowSqlAttributeSource(
        config=_config_stub, settings=_settings_stub, engine=_engine_stub
    )
