"""Errors raised while resolving person attributes."""

from __future__ import annotations


class PersonDirectoryError(RuntimeError):
    """Base class for failures confined to one attribute source."""


class MalformedResultError(PersonDirectoryError):
    """Raised when a backend row violates the source's declared column contract."""

    def __init__(self, message: str, *, column: str | None = None) -> None:
        super().__init__(message)
        self.column = column


class TranslationError(PersonDirectoryError):
    """Raised when a query attribute cannot be expressed for a backend."""

    def __init__(self, message: str, *, attribute: str | None = None) -> None:
        super().__init__(message)
        self.attribute = attribute


class BackendError(PersonDirectoryError):
    """Raised when the transport behind a source fails."""

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source
