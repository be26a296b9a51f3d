"""
Domain errors for the booking core.

Each error carries the HTTP status and a machine-readable code so routers
stay thin: the exception handler in main.py renders any BookingError as
{"detail": ..., "code": ..., **extra}.

Conflicts (duplicate/overlapping slot, lost reservation race) are expected
and frequent; the UI treats them as a quiet no-op or a "pick another slot"
prompt. Storage failures are NOT wrapped here: SQLAlchemy errors propagate
to the caller as-is.
"""

from typing import Any, Optional

from fastapi import status


class BookingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "booking_error"
    default_detail: str = "Booking request failed"

    def __init__(self, detail: Optional[str] = None, **extra: Any):
        self.detail = detail or self.default_detail
        self.extra = extra
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"detail": self.detail, "code": self.code, **self.extra}


class SlotConflictError(BookingError):
    """Some requested slots could not be reserved (taken, missing or past)."""

    status_code = status.HTTP_409_CONFLICT
    code = "slots_unavailable"
    default_detail = "Slot already taken or does not exist"

    def __init__(self, unavailable_ids: list[str], detail: Optional[str] = None):
        self.unavailable_ids = list(unavailable_ids)
        super().__init__(detail, unavailable_ids=self.unavailable_ids)


class SlotOverlapError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    code = "slot_overlap"
    default_detail = "Overlapping slot"

    def __init__(self, conflicting_ids: list[str], detail: Optional[str] = None):
        self.conflicting_ids = list(conflicting_ids)
        super().__init__(detail, conflicting_ids=self.conflicting_ids)


class UnauthorizedError(BookingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_detail = "Authentication required"


class ForbiddenError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Forbidden"


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class BookingValidationError(BookingError):
    status_code = 422
    code = "invalid_request"
    default_detail = "Invalid request"


class InvalidTransitionError(BookingError, ValueError):
    """Raised before touching storage when a status change is not in the table."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"
    default_detail = "Illegal status transition"
