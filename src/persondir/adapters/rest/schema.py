"""Pydantic models describing attribute endpoint payloads."""

from __future__ import annotations

from typing import Any

from pydantic import RootModel


class AttributesPayload(RootModel[dict[str, Any]]):
    """One person: a JSON object of attribute names to scalars or arrays."""


class AttributesListPayload(RootModel[list[AttributesPayload]]):
    pass


def parse_payload(payload: object) -> list[dict[str, object]]:
    """Validate a decoded body and return one row per person.

    Raises ``pydantic.ValidationError`` when the body is neither an object nor
    a list of objects.
    """

    if isinstance(payload, list):
        people = AttributesListPayload.model_validate(payload).root
        return [dict(person.root) for person in people]
    return [dict(AttributesPayload.model_validate(payload).root)]
