"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import HttpCacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .ldap import LdapConfig, get_ldap_config
from .logging import configure_logging
from .rest import RestConfig
from .sources import (
    CONFIG_ENV_VAR,
    CachingConfig,
    ResolverConfig,
    SourceConfig,
    load_resolver_config,
    parse_resolver_config,
    resolve_config_path,
)
from .sql import SqlConfig, get_database_uri

__all__ = [
    "CONFIG_ENV_VAR",
    "HttpCacheConfig",
    "CachingConfig",
    "ConfigurationError",
    "LdapConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "ResolverConfig",
    "RestConfig",
    "RetryPolicy",
    "SourceConfig",
    "SqlConfig",
    "configure_logging",
    "get_database_uri",
    "get_ldap_config",
    "load_resolver_config",
    "optional_env_var",
    "parse_resolver_config",
    "require_env_var",
    "require_env_vars",
    "resolve_config_path",
]
