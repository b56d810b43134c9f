"""Exception taxonomy for the work-item store.

Each error also subclasses the builtin the rest of the code base would
naturally raise (``ValueError`` / ``KeyError``), so callers can catch either.
"""

from __future__ import annotations


class WorkStoreError(Exception):
    """Base class for every error raised by the store."""


class ValidationError(WorkStoreError, ValueError):
    """Input failed validation before any persistence attempt."""


class NotFoundError(WorkStoreError, KeyError):
    """An operation referenced an id absent from the canonical collection."""

    def __init__(self, item_id: str) -> None:
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self) -> str:
        return f"Work item not found: {self.item_id}"


class InvalidTransitionError(WorkStoreError, ValueError):
    """A status change the lifecycle policy cannot reconcile."""

    def __init__(self, message: str, *, from_status: str = "", to_status: str = "", kind: str = "") -> None:
        super().__init__(message)
        self.from_status = from_status
        self.to_status = to_status
        self.kind = kind


class PersistenceError(WorkStoreError):
    """The persistence adapter failed; in-memory state was left unchanged."""

    def __init__(self, message: str, *, project_id: str = "") -> None:
        super().__init__(message)
        self.project_id = project_id


def error_code(exc: BaseException) -> str:
    """Machine-readable code for batch error records and API responses."""
    if isinstance(exc, NotFoundError):
        return "not_found"
    if isinstance(exc, InvalidTransitionError):
        return "invalid_transition"
    if isinstance(exc, PersistenceError):
        return "persistence_error"
    return "validation_error"
