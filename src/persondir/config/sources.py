"""Resolver configuration loaded from a TOML file.

Top-level keys configure the merging resolver; ``[cache]`` configures the
caching decorator and every ``[[sources]]`` table declares one attribute
source::

    username_attribute = "uid"
    merger = "multivalued"

    [cache]
    enabled = true
    ttl_seconds = 300

    [[sources]]
    name = "directory"
    type = "ldap"
    url = "ldap://ldap.example.org"
    bind_password_env = "DIRECTORY_PASSWORD"

    [sources.result_attributes]
    mail = ["mail", "email"]

Any string option may instead be given as ``<option>_env`` naming the
environment variable that holds it.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import ValidationError

from persondir.domain.attributes import parse_attribute_mapping
from persondir.domain.query import QueryType
from persondir.domain.source import SourceSettings

from .env import optional_env_var
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import HttpCacheConfig, RateLimit, ResilienceConfig
from .ldap import LdapConfig, get_ldap_config
from .rest import RestConfig
from .schema import (
    LdapSourceModel,
    ResolverDocument,
    RestSourceModel,
    SqlSourceModel,
    StaticSourceModel,
)
from .sql import SqlConfig

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .schema import SourceModel

type SourceKind = Literal["ldap", "sql", "multirow_sql", "rest", "static"]

CONFIG_ENV_VAR = "PERSONDIR_CONFIG"

_LDAP_FIELDS = {item.name for item in fields(LdapConfig)}


@dataclass(frozen=True, slots=True)
class CachingConfig:
    enabled: bool = False
    max_entries: int | None = None
    ttl_seconds: float | None = None
    cache_null_results: bool = True
    cache_key_attributes: frozenset[str] | None = None


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """One configured source; only the field matching ``kind`` is set."""

    kind: SourceKind
    settings: SourceSettings
    required: bool = False
    ldap: LdapConfig | None = None
    sql: SqlConfig | None = None
    rest: RestConfig | None = None
    rows: tuple[dict[str, object], ...] = ()

    @property
    def name(self) -> str:
        return self.settings.name


@dataclass(frozen=True, slots=True)
class ResolverConfig:
    sources: tuple[SourceConfig, ...] = ()
    username_attribute: str = "username"
    merger: str = "multivalued"
    distinct_values: bool = False
    case_insensitive: bool = False
    max_workers: int = 1
    cache: CachingConfig = field(default_factory=CachingConfig)


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Return ``path`` or the file named by ``PERSONDIR_CONFIG``."""

    if path is not None:
        return Path(path)
    configured = optional_env_var(CONFIG_ENV_VAR)
    if configured is None:
        raise MissingConfigurationError(f"Missing configuration for: {CONFIG_ENV_VAR}")
    return Path(configured)


def load_resolver_config(path: str | Path | None = None) -> ResolverConfig:
    config_path = resolve_config_path(path)
    try:
        with config_path.open("rb") as handle:
            document = tomllib.load(handle)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration file {config_path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {config_path}: {exc}") from exc
    return parse_resolver_config(document)


def parse_resolver_config(document: Mapping[str, object]) -> ResolverConfig:
    """Build a :class:`ResolverConfig` from an already decoded document."""

    try:
        parsed = ResolverDocument.model_validate(document)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid resolver configuration: {_describe(exc)}") from exc

    sources = tuple(
        _source_config(
            source,
            name=name,
            username_attribute=parsed.username_attribute,
            case_insensitive=parsed.case_insensitive,
        )
        for name, source in zip(parsed.source_names(), parsed.sources, strict=True)
    )
    cache = parsed.cache
    return ResolverConfig(
        sources=sources,
        username_attribute=parsed.username_attribute,
        merger=parsed.merger,
        distinct_values=parsed.distinct_values,
        case_insensitive=parsed.case_insensitive,
        max_workers=parsed.max_workers,
        cache=CachingConfig(
            enabled=cache.enabled,
            max_entries=cache.max_entries,
            ttl_seconds=cache.ttl_seconds,
            cache_null_results=cache.cache_null_results,
            cache_key_attributes=(
                frozenset(cache.key_attributes) if cache.key_attributes is not None else None
            ),
        ),
    )


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(problems)


def _source_config(
    source: SourceModel,
    *,
    name: str,
    username_attribute: str,
    case_insensitive: bool,
) -> SourceConfig:
    settings = SourceSettings(
        name=name,
        username_attribute=source.username_attribute or username_attribute,
        query_attribute_mapping=parse_attribute_mapping(source.query_attributes),
        result_attribute_mapping=parse_attribute_mapping(source.result_attributes),
        mandatory_columns=frozenset(source.mandatory_columns),
        query_type=QueryType(source.query_type),
        case_insensitive=(
            source.case_insensitive if source.case_insensitive is not None else case_insensitive
        ),
        enabled=source.enabled,
    )
    required = source.required

    match source:
        case LdapSourceModel():
            return SourceConfig("ldap", settings, required, ldap=_ldap_config(source))
        case SqlSourceModel():
            return SourceConfig(source.type, settings, required, sql=_sql_config(source))
        case RestSourceModel():
            return SourceConfig("rest", settings, required, rest=_rest_config(source, name))
        case StaticSourceModel():
            rows = tuple(dict(row) for row in source.rows)
            return SourceConfig("static", settings, required, rows=rows)
        case _:
            raise ConfigurationError(f"Source '{name}' has an unsupported type")


def _ldap_config(source: LdapSourceModel) -> LdapConfig:
    """Table values override the ``PERSONDIR_LDAP_*`` connection when ``url`` is omitted."""

    base = LdapConfig(url=source.url) if source.url is not None else get_ldap_config()
    overrides = source.model_dump(include=_LDAP_FIELDS, exclude_unset=True, exclude_none=True)
    return replace(base, **overrides)


def _sql_config(source: SqlSourceModel) -> SqlConfig:
    return SqlConfig(
        table=source.table,
        database_uri=source.database_uri,
        schema=source.db_schema,
        username_column=source.username_column,
        name_value_columns=parse_attribute_mapping(source.name_value_columns),
    )


def _rest_config(source: RestSourceModel, name: str) -> RestConfig:
    calls = source.max_calls_per_second
    resilience = ResilienceConfig(
        name=name,
        timeout_seconds=source.timeout_seconds,
        ratelimit=RateLimit.per_second(calls) if calls is not None else None,
        cache=HttpCacheConfig(
            enabled=source.http_cache,
            sqlite_path=source.http_cache_path,
            ttl_seconds=source.http_cache_ttl_seconds,
        ),
    )
    return RestConfig(
        url=source.url,
        method=source.method,
        basic_auth_username=source.basic_auth_username,
        basic_auth_password=source.basic_auth_password,
        resilience=resilience,
    )
