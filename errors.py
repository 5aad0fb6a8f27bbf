"""
Error taxonomy for the bus pass lifecycle.

Every failure raised by the engine is a ``BusPassError`` so callers can render
``title`` and ``message`` without knowing the concrete kind.
"""
from __future__ import annotations


class BusPassError(Exception):
    """Base class for all lifecycle failures."""

    kind = "error"
    title = "Error"

    def __init__(self, message: str, title: str | None = None):
        super().__init__(message)
        self.message = message
        if title is not None:
            self.title = title


class ValidationError(BusPassError):
    """Malformed or missing input. Always user-correctable."""

    kind = "validation"
    title = "Validation Error"

    def __init__(self, message: str, errors: dict[str, str] | None = None, title: str | None = None):
        super().__init__(message, title=title)
        self.errors = dict(errors or {})


class AuthorizationError(BusPassError):
    """The acting user lacks rights for the operation."""

    kind = "authorization"
    title = "Not allowed"


class NotFoundError(BusPassError):
    """A referenced record does not exist."""

    kind = "not_found"
    title = "Not found"


class InvalidStateError(BusPassError):
    """The operation is not legal in the record's current state."""

    kind = "invalid_state"
    title = "Action unavailable"


class StorageError(BusPassError):
    """The record store failed. Nothing was committed, so the command can be retried."""

    kind = "storage"
    title = "Error"
