# dentconnect/core/errors.py
from __future__ import annotations

from fastapi import status


class DomainError(Exception):
    """
    Base class for errors that reach the API caller.
    Each subclass has a stable `code` the client can switch on.
    """

    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.code
        super().__init__(self.detail)


class NotFoundError(DomainError):
    """Referenced entity id does not exist."""

    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    """Appointment is no longer available at booking time."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(DomainError):
    """Operation attempted on an entity in the wrong status."""

    code = "invalid_state"
    status_code = status.HTTP_409_CONFLICT


class InvalidTransitionError(DomainError):
    """Approval status change attempted out of order."""

    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT


class ValidationError(DomainError):
    """Malformed or missing booking fields."""

    code = "validation_error"
    status_code = 422


class ForbiddenError(DomainError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class AlreadyExistsError(DomainError):
    code = "already_exists"
    status_code = status.HTTP_409_CONFLICT


class NotificationFailure(Exception):
    """
    Mail transport raised or timed out. Logged by the dispatcher and never
    propagated to the caller.
    """


__all__ = [
    "DomainError",
    "NotFoundError",
    "ConflictError",
    "InvalidStateError",
    "InvalidTransitionError",
    "ValidationError",
    "ForbiddenError",
    "AlreadyExistsError",
    "NotificationFailure",
]
