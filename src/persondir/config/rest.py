"""HTTP attribute endpoint configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from .http_resilience import ResilienceConfig

type HttpMethod = Literal["GET", "POST"]

REST_TIMEOUT_SECONDS = 10.0


def _default_resilience() -> ResilienceConfig:
    return ResilienceConfig(name="rest", timeout_seconds=REST_TIMEOUT_SECONDS)


@dataclass(frozen=True, slots=True)
class RestConfig:
    """Endpoint returning a JSON attribute map for the ``username`` parameter.

    Basic authentication is only sent when both credentials are set.
    """

    url: str
    method: HttpMethod = "GET"
    basic_auth_username: str | None = None
    basic_auth_password: str | None = None
    resilience: ResilienceConfig = field(default_factory=_default_resilience)
