"""Error taxonomy for the row editing core."""
from __future__ import annotations


class GridError(Exception):
    """Base class for every error raised by the grid core."""


class NotFound(GridError):
    """Raised when a row identifier is missing from the row store."""

    def __init__(self, row_id: str) -> None:
        super().__init__(f"row {row_id!r} not found")
        self.row_id = row_id


class DuplicateId(GridError):
    """Raised when a row identifier would appear twice in the row store."""

    def __init__(self, row_id: str) -> None:
        super().__init__(f"row {row_id!r} already exists")
        self.row_id = row_id


class OperationInProgress(GridError):
    """Raised when a transition is attempted on a row with a pending remote write."""

    def __init__(self, row_id: str | None = None) -> None:
        message = f"operation already in progress for row {row_id!r}" if row_id else "remote operations in progress"
        super().__init__(message)
        self.row_id = row_id


class InvalidTransition(GridError):
    """Raised when an intent does not apply to the row's current mode."""

    def __init__(self, row_id: str, intent: str, mode: str) -> None:
        super().__init__(f"cannot {intent} row {row_id!r} in {mode} mode")
        self.row_id = row_id
        self.intent = intent
        self.mode = mode


class Unauthenticated(GridError):
    """Raised when a remote call is attempted without a usable credential."""

    user_message = "Unauthorized: No token provided."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)


class RemoteFailure(GridError):
    """Network or server error reported by the documents API."""

    USER_MESSAGES: dict[str, str] = {
        "create": "Failed to add record.",
        "update": "Failed to update record.",
        "delete": "Failed to delete record.",
        "fetch": "Failed to load data.",
        "login": "Login failed.",
    }

    def __init__(self, operation: str, row_id: str | None = None, reason: str | None = None) -> None:
        detail = f"{operation} failed"
        if row_id is not None:
            detail += f" for row {row_id!r}"
        if reason:
            detail += f": {reason}"
        super().__init__(detail)
        self.operation = operation
        self.row_id = row_id
        self.reason = reason

    @property
    def user_message(self) -> str:
        return self.USER_MESSAGES.get(self.operation, "Request failed.")


def is_recoverable(exc: BaseException) -> bool:
    """Return ``True`` for failures the session can continue after."""

    return isinstance(exc, (RemoteFailure, Unauthenticated))


__all__ = [
    "DuplicateId",
    "GridError",
    "InvalidTransition",
    "NotFound",
    "OperationInProgress",
    "RemoteFailure",
    "Unauthenticated",
    "is_recoverable",
]
