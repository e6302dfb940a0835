"""Public interface for the LDAP adapter."""

from __future__ import annotations

from .filters import EqualsFilter, LikeFilter, LogicalFilter, value_filter
from .source import LdapAttributeSource, LdapConnection, default_connection_factory

__all__ = [
    "EqualsFilter",
    "LdapAttributeSource",
    "LdapConnection",
    "LikeFilter",
    "LogicalFilter",
    "default_connection_factory",
    "value_filter",
]
