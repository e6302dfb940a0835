"""Relational attribute source configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var


@dataclass(frozen=True, slots=True)
class SqlConfig:
    """Table to query and how to reach it.

    ``name_value_columns`` maps attribute-name columns to their value columns
    and is only used by one-row-per-attribute tables, where
    ``username_column`` names the identifier column.
    """

    table: str
    database_uri: str | None = None
    schema: str | None = None
    username_column: str | None = None
    name_value_columns: dict[str, tuple[str, ...]] | None = None


def get_database_uri() -> str | None:
    """Return the ``DATABASE_URI`` override, if any."""

    return optional_env_var("DATABASE_URI")
