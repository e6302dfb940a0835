"""Pydantic models describing the resolver TOML document."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, cast

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)

from persondir.domain.merge import merger_for

from .env import require_env_var
from .rest import REST_TIMEOUT_SECONDS

Seconds = Annotated[float, Field(strict=True, gt=0)]
NameMapping = dict[str, StrictStr | list[StrictStr]]


def _lower(value: object) -> object:
    return value.lower() if isinstance(value, str) else value


def _upper(value: object) -> object:
    return value.upper() if isinstance(value, str) else value


class ConfigModel(BaseModel):
    """Base for every table; ``<key>_env`` entries are replaced by the variable they name."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _resolve_env_references(cls, value: object) -> object:
        if not isinstance(value, Mapping):
            return value
        data: dict[str, object] = dict(cast(Mapping[str, object], value))
        for key in [key for key in data if key.endswith("_env")]:
            env_name = data.pop(key)
            if not isinstance(env_name, str):
                raise ValueError(f"'{key}' must name an environment variable")
            # the variable wins over a literal value under the plain key
            data[key.removesuffix("_env")] = require_env_var(env_name)
        return data


class CacheModel(ConfigModel):
    enabled: StrictBool = False
    max_entries: Annotated[StrictInt, Field(ge=1)] | None = None
    ttl_seconds: Seconds | None = None
    cache_null_results: StrictBool = True
    key_attributes: list[StrictStr] | None = None


class SourceModel(ConfigModel):
    name: StrictStr | None = None
    username_attribute: StrictStr | None = None
    query_attributes: NameMapping | None = None
    result_attributes: NameMapping | None = None
    mandatory_columns: list[StrictStr] = Field(default_factory=list)
    query_type: Literal["and", "or"] = "and"
    case_insensitive: StrictBool | None = None
    enabled: StrictBool = True
    required: StrictBool = False

    _normalize_query_type = field_validator("query_type", mode="before")(_lower)


class LdapSourceModel(SourceModel):
    """LDAP table; without ``url`` the ``PERSONDIR_LDAP_*`` variables supply the connection."""

    type: Literal["ldap"]
    url: StrictStr | None = None
    base_dn: StrictStr | None = None
    bind_dn: StrictStr | None = None
    bind_password: StrictStr | None = None
    search_scope: Literal["BASE", "LEVEL", "SUBTREE"] = "SUBTREE"
    use_ssl: StrictBool = False
    connect_timeout_seconds: Seconds = 10.0
    receive_timeout_seconds: Seconds = 30.0
    time_limit_seconds: Annotated[StrictInt, Field(ge=0)] = 0
    size_limit: Annotated[StrictInt, Field(ge=0)] = 0
    set_returning_attributes: StrictBool = True

    _normalize_scope = field_validator("search_scope", mode="before")(_upper)


class SqlSourceModel(SourceModel):
    type: Literal["sql", "multirow_sql"]
    table: StrictStr
    database_uri: StrictStr | None = None
    # ``schema`` would shadow a BaseModel attribute
    db_schema: StrictStr | None = Field(default=None, alias="schema")
    username_column: StrictStr | None = None
    name_value_columns: NameMapping | None = None


class RestSourceModel(SourceModel):
    type: Literal["rest"]
    url: StrictStr
    method: Literal["GET", "POST"] = "GET"
    basic_auth_username: StrictStr | None = None
    basic_auth_password: StrictStr | None = None
    timeout_seconds: Seconds = REST_TIMEOUT_SECONDS
    max_calls_per_second: Seconds | None = None
    http_cache: StrictBool = False
    http_cache_path: StrictStr | None = None
    http_cache_ttl_seconds: Seconds | None = None

    _normalize_method = field_validator("method", mode="before")(_upper)

    @model_validator(mode="after")
    def _cache_needs_a_file(self) -> RestSourceModel:
        if self.http_cache and not self.http_cache_path:
            raise ValueError("http_cache needs http_cache_path")
        return self


class StaticSourceModel(SourceModel):
    type: Literal["static"]
    rows: list[dict[str, Any]] = Field(default_factory=list)


AnySourceModel = Annotated[
    LdapSourceModel | SqlSourceModel | RestSourceModel | StaticSourceModel,
    Field(discriminator="type"),
]


class ResolverDocument(ConfigModel):
    username_attribute: StrictStr = "username"
    merger: StrictStr = "multivalued"
    distinct_values: StrictBool = False
    case_insensitive: StrictBool = False
    max_workers: Annotated[StrictInt, Field(ge=1)] = 1
    cache: CacheModel = Field(default_factory=CacheModel)
    sources: list[AnySourceModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_merger_and_names(self) -> ResolverDocument:
        merger_for(self.merger, distinct_values=self.distinct_values)
        names = self.source_names()
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate source names: {', '.join(duplicates)}")
        return self

    def source_names(self) -> list[str]:
        return [source.name or f"source-{index}" for index, source in enumerate(self.sources)]
