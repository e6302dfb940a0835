"""Retry, rate-limit and response-cache settings for outbound HTTP sources."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
from httpx_retries import Retry

ShouldCacheHook = Callable[[object], bool]

RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    """Retries for attribute lookups.

    Attribute endpoints are read-only, so ``POST`` lookups are retried like
    ``GET`` ones.
    """

    attempts: int = 3
    backoff_factor: float = 0.5
    max_backoff_seconds: float = 30.0
    statuses: frozenset[int] = RETRY_STATUSES

    def build(self) -> Retry:
        return Retry(
            total=self.attempts,
            backoff_factor=self.backoff_factor,
            max_backoff_wait=self.max_backoff_seconds,
            respect_retry_after_header=True,
            allowed_methods=("GET", "POST"),
            status_forcelist=tuple(sorted(self.statuses)),
            retry_on_exceptions=(httpx.TimeoutException, httpx.NetworkError),
        )


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float

    @classmethod
    def per_second(cls, calls: float) -> RateLimit:
        return cls(max_calls=1, per_seconds=1.0 / calls)


@dataclass(slots=True, frozen=True)
class HttpCacheConfig:
    """Response cache kept in a SQLite file so it outlives a single request."""

    enabled: bool = False
    sqlite_path: str | None = None
    ttl_seconds: float | None = None
    should_cache: ShouldCacheHook | None = None


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    cache: HttpCacheConfig | None = None
