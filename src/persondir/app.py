"""Application composition: turn configuration into a ready resolver."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from persondir.adapters.ldap import LdapAttributeSource
from persondir.adapters.memory_cache import InMemoryCacheStore
from persondir.adapters.rest import RestAttributeSource
from persondir.adapters.sqlalchemy import MultiRowSqlAttributeSource, SingleRowSqlAttributeSource
from persondir.adapters.static import StaticAttributeSource
from persondir.config import ConfigurationError, load_resolver_config
from persondir.domain.cache_keys import AttributeBasedCacheKeyGenerator
from persondir.domain.caching import CachingPersonAttributeDao
from persondir.domain.merge import merger_for
from persondir.domain.resolver import MergingPersonAttributeDao, SourceBinding
from persondir.domain.source import AttributeSourceDao

if TYPE_CHECKING:
    from pathlib import Path

    from persondir.config import CachingConfig, ResolverConfig, SourceConfig
    from persondir.domain.ports import CacheStore, PersonAttributeDao
    from persondir.domain.ports.sources import AttributeSourceAdapter


log = getLogger(__name__)


def build_adapter(source: SourceConfig) -> AttributeSourceAdapter[object]:
    """Create the backend adapter described by one ``[[sources]]`` entry."""

    settings = source.settings
    if source.kind == "ldap" and source.ldap is not None:
        return LdapAttributeSource(config=source.ldap, settings=settings)
    if source.kind == "sql" and source.sql is not None:
        return SingleRowSqlAttributeSource(config=source.sql, settings=settings)
    if source.kind == "multirow_sql" and source.sql is not None:
        return MultiRowSqlAttributeSource(config=source.sql, settings=settings)
    if source.kind == "rest" and source.rest is not None:
        return RestAttributeSource(config=source.rest, settings=settings)
    if source.kind == "static":
        return StaticAttributeSource(source.rows, settings)
    raise ConfigurationError(f"Source '{source.name}' is missing its {source.kind} settings")


def build_cache_store(config: CachingConfig) -> CacheStore:
    return InMemoryCacheStore(max_entries=config.max_entries, ttl_seconds=config.ttl_seconds)


def build_resolver(
    config: ResolverConfig,
    *,
    store: CacheStore | None = None,
) -> PersonAttributeDao:
    """Compose source DAOs, the merging resolver and, when enabled, the cache."""

    bindings = [
        SourceBinding(
            name=source.name,
            dao=AttributeSourceDao(build_adapter(source), source.settings),
            required=source.required,
        )
        for source in config.sources
    ]
    resolver: PersonAttributeDao = MergingPersonAttributeDao(
        bindings,
        merger=merger_for(config.merger, distinct_values=config.distinct_values),
        username_attribute=config.username_attribute,
        case_insensitive=config.case_insensitive,
        max_workers=config.max_workers,
    )
    log.info(
        "Built resolver with %d sources: %s",
        len(bindings),
        ", ".join(binding.name for binding in bindings),
    )

    if not config.cache.enabled:
        return resolver

    log.info(
        f"Caching enabled: max_entries={config.cache.max_entries}, "
        f"ttl_seconds={config.cache.ttl_seconds}"
    )
    return CachingPersonAttributeDao(
        resolver,
        store or build_cache_store(config.cache),
        key_generator=AttributeBasedCacheKeyGenerator(
            username_attribute=config.username_attribute,
            cache_key_attributes=config.cache.cache_key_attributes,
        ),
        cache_null_results=config.cache.cache_null_results,
    )


def load_resolver(path: str | Path | None = None) -> PersonAttributeDao:
    """Load configuration from ``path`` (or ``PERSONDIR_CONFIG``) and build a resolver."""

    return build_resolver(load_resolver_config(path))
