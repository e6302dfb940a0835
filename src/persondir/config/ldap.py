"""LDAP directory configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .env import optional_env_var, require_env_var

type SearchScope = Literal["BASE", "LEVEL", "SUBTREE"]


@dataclass(frozen=True, slots=True)
class LdapConfig:
    """Connection and search settings for an LDAP attribute source.

    ``time_limit_seconds`` and ``size_limit`` of ``0`` leave the limits to the
    server. ``set_returning_attributes`` requests only the mapped attributes.
    """

    url: str
    base_dn: str = ""
    bind_dn: str | None = None
    bind_password: str | None = None
    search_scope: SearchScope = "SUBTREE"
    use_ssl: bool = False
    connect_timeout_seconds: float = 10.0
    receive_timeout_seconds: float = 30.0
    time_limit_seconds: int = 0
    size_limit: int = 0
    set_returning_attributes: bool = True


def get_ldap_config(*, base_dn: str = "") -> LdapConfig:
    return LdapConfig(
        url=require_env_var("PERSONDIR_LDAP_URL"),
        base_dn=optional_env_var("PERSONDIR_LDAP_BASE_DN") or base_dn,
        bind_dn=optional_env_var("PERSONDIR_LDAP_BIND_DN"),
        bind_password=optional_env_var("PERSONDIR_LDAP_BIND_PASSWORD"),
    )
