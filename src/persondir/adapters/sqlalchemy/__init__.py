"""Relational attribute sources built on SQLAlchemy Core."""

from __future__ import annotations

from .sources import (
    MultiRowSqlAttributeSource,
    SingleRowSqlAttributeSource,
    WhereClause,
    value_criterion,
)

__all__ = [
    "MultiRowSqlAttributeSource",
    "SingleRowSqlAttributeSource",
    "WhereClause",
    "value_criterion",
]
