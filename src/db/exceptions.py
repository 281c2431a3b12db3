"""Repository exceptions."""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for repository operations."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class DuplicateRecordError(RepositoryError):
    """Raised when an insert or update violates a unique constraint."""

    def __init__(self, message: str, constraint: str | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, cause)
        self.constraint = constraint


def constraint_name_from(error: Exception) -> str | None:
    """Best-effort name of the violated constraint from a driver error."""
    orig = getattr(error, "orig", None)
    name = getattr(orig, "constraint_name", None)
    if name:
        return str(name)
    diag = getattr(orig, "diag", None)
    return getattr(diag, "constraint_name", None)
