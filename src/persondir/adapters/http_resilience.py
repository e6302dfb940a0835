"""Async HTTP client with retries, a rate limiter and an optional response cache."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, TypedDict, Unpack

import httpx
from aiolimiter import AsyncLimiter
from hishel import AsyncSqliteStorage, FilterPolicy
from hishel import Response as HishelCacheResponse
from hishel._policies import BaseFilter
from hishel.httpx import AsyncCacheClient
from httpx_retries import RetryTransport

from persondir.config.errors import ConfigurationError

if TYPE_CHECKING:
    from types import TracebackType

    from httpx._types import AuthTypes, QueryParamTypes

    from persondir.config.http_resilience import ResilienceConfig, ShouldCacheHook


class RequestOptions(TypedDict, total=False):
    params: QueryParamTypes | None
    auth: AuthTypes | None


class ResilientClient:
    """One ``httpx.AsyncClient`` per source, throttled and retried per its config."""

    def __init__(self, config: ResilienceConfig) -> None:
        self.config = config
        ratelimit = config.ratelimit
        self._limiter = (
            AsyncLimiter(ratelimit.max_calls, ratelimit.per_seconds) if ratelimit else None
        )
        self._client = _build_client(config, RetryTransport(retry=config.retry.build()))

    async def __aenter__(self) -> ResilientClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        url: str,
        **kwargs: Unpack[RequestOptions],
    ) -> httpx.Response:
        if self._limiter is None:
            return await self._client.request(method, url, **kwargs)
        async with self._limiter:
            return await self._client.request(method, url, **kwargs)


class _JsonBodyFilter(BaseFilter[HishelCacheResponse]):
    """Keep a response only when ``predicate`` accepts its decoded JSON body."""

    def __init__(self, predicate: ShouldCacheHook) -> None:
        self._predicate = predicate

    def needs_body(self) -> bool:
        return True

    def apply(self, item: HishelCacheResponse, body: bytes | None) -> bool:  # noqa: ARG002
        if body is None:
            return False
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return False
        return bool(self._predicate(payload))


def _build_client(config: ResilienceConfig, transport: RetryTransport) -> httpx.AsyncClient:
    cache = config.cache
    if cache is None or not cache.enabled:
        return httpx.AsyncClient(timeout=config.timeout_seconds, transport=transport)

    if not cache.sqlite_path:
        raise ConfigurationError(f"HTTP cache for source '{config.name}' needs a sqlite_path")
    storage = AsyncSqliteStorage(database_path=cache.sqlite_path, default_ttl=cache.ttl_seconds)
    policy = (
        FilterPolicy(response_filters=[_JsonBodyFilter(cache.should_cache)])
        if cache.should_cache is not None
        else None
    )
    return AsyncCacheClient(
        timeout=config.timeout_seconds,
        transport=transport,
        storage=storage,
        policy=policy,
    )
