"""Attribute source reading JSON attribute maps from an HTTP endpoint."""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from persondir.adapters.http_resilience import ResilientClient
from persondir.config.errors import ConfigurationError
from persondir.domain.attributes import find_attribute
from persondir.domain.errors import BackendError, TranslationError
from persondir.domain.query import NO_QUERY, NoQuery, map_result_row

from .schema import parse_payload

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from persondir.config.http_resilience import ResilienceConfig
    from persondir.config.rest import RestConfig
    from persondir.domain.attributes import Person
    from persondir.domain.ports.sources import Row
    from persondir.domain.source import SourceSettings

log = getLogger(__name__)

type QueryParams = list[tuple[str, str]]


def _has_attributes(payload: object) -> bool:
    return bool(payload)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _run_blocking[T](coroutine: Coroutine[object, object, T]) -> T:
    """Run ``coroutine`` to completion, also when the caller is inside an event loop."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coroutine)
    # asyncio.run refuses to nest, so the request gets a loop on its own thread
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="persondir-rest") as pool:
        return pool.submit(asyncio.run, coroutine).result()


class RestAttributeSource:
    """Send query attributes as request parameters and read back attribute maps.

    The endpoint answers with one JSON object or a list of them. When an
    object omits the identifier, the ``username`` parameter of the request
    supplies it. Responses with status 404 mean nobody matched.
    """

    def __init__(
        self,
        *,
        config: RestConfig,
        settings: SourceSettings,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        if not config.url:
            raise ConfigurationError(f"REST source '{settings.name}' needs a URL")
        self.config = config
        self.settings = settings
        self.client_factory = client_factory or _default_client_factory

        resilience = replace(config.resilience, name=settings.name)
        cache = resilience.cache
        if cache is not None and cache.enabled and cache.should_cache is None:
            # empty bodies are not worth keeping
            resilience = replace(resilience, cache=replace(cache, should_cache=_has_attributes))
        self.resilience = resilience

        mapping = settings.query_attribute_mapping
        self._username_params: tuple[str, ...] = (
            mapping.get(settings.username_attribute, ())
            if mapping is not None
            else (settings.username_attribute,)
        )

    def append_to_query(
        self,
        builder: QueryParams | None,
        attribute: str,
        values: list[object],
    ) -> QueryParams:
        if any(value is None for value in values):
            raise TranslationError(
                f"Cannot send None for request parameter '{attribute}'",
                attribute=attribute,
            )
        params = builder if builder is not None else []
        params.extend((attribute, str(value)) for value in values)
        return params

    def run_query(self, builder: QueryParams | None) -> list[Row] | NoQuery:
        if not builder:
            return NO_QUERY
        rows = _run_blocking(self._fetch(builder))

        username = next((value for name, value in builder if name in self._username_params), None)
        if username is not None:
            for row in rows:
                key = find_attribute(
                    row,
                    self.settings.username_attribute,
                    case_insensitive=self.settings.case_insensitive,
                )
                if key is None:
                    row[self.settings.username_attribute] = username
        return rows

    async def _fetch(self, params: QueryParams) -> list[dict[str, object]]:
        auth: httpx.BasicAuth | None = None
        if self.config.basic_auth_username and self.config.basic_auth_password:
            auth = httpx.BasicAuth(self.config.basic_auth_username, self.config.basic_auth_password)

        log.debug("%s %s with %d parameters", self.config.method, self.config.url, len(params))
        try:
            async with self.client_factory(self.resilience) as client:
                response = await client.request(
                    self.config.method,
                    self.config.url,
                    params=params,
                    auth=auth,
                )
                if response.status_code == httpx.codes.NOT_FOUND:
                    return []
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise BackendError(
                f"Request failed for source '{self.settings.name}': {exc}",
                source=self.settings.name,
            ) from exc
        except ValueError as exc:
            raise BackendError(
                f"Invalid JSON from source '{self.settings.name}': {exc}",
                source=self.settings.name,
            ) from exc

        try:
            return parse_payload(payload)
        except ValidationError as exc:
            raise BackendError(
                f"Unexpected payload from source '{self.settings.name}': {exc}",
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


if TYPE_CHECKING:
    from typing import cast

    from persondir.domain.ports.sources import AttributeSourceAdapter

    _config_stub = cast("RestConfig", object())
    _settings_stub = cast("SourceSettings", object())
    _adapter_check: AttributeSourceAdapter[QueryParams] = RestAttributeSource(
        config=_config_stub, settings=_settings_stub
    )
