"""HTTP/JSON attribute source."""

from __future__ import annotations

from .client import RestAttributeSource
from .schema import AttributesListPayload, AttributesPayload, parse_payload

__all__ = [
    "AttributesListPayload",
    "AttributesPayload",
    "RestAttributeSource",
    "parse_payload",
]
