"""
Domain errors with machine-readable codes.

Every error is rendered by the API as {"code", "message", ...extra} so clients
can decide whether to re-resolve availability, pick another slot, or fix input.
"""

from typing import Any


class BookingError(Exception):
    status_code: int = 400
    code: str = "BAD_REQUEST"

    def __init__(self, message: str, code: str | None = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.extra = extra

    def to_payload(self) -> dict:
        return {"code": self.code, "message": self.message, **self.extra}


# ── Not found / access ───────────────────────────────────────────────────


class NotFound(BookingError):
    status_code = 404
    code = "NOT_FOUND"


class ActivityNotFound(NotFound):
    code = "ACTIVITY_NOT_FOUND"


class BookingNotFound(NotFound):
    code = "BOOKING_NOT_FOUND"


class UserNotFound(NotFound):
    code = "USER_NOT_FOUND"


class BusinessNotFound(NotFound):
    code = "BUSINESS_NOT_FOUND"


class NotOwner(BookingError):
    status_code = 403
    code = "FORBIDDEN"


# ── Templates ────────────────────────────────────────────────────────────


class TemplateNotFound(BookingError):
    """No active template for the activity's duration: a business setup error."""

    status_code = 409
    code = "TEMPLATE_NOT_FOUND"


class TemplateMismatch(BookingError):
    """Requested slot is not on the current grid; the client must re-resolve."""

    status_code = 409
    code = "TEMPLATE_MISMATCH"


class InvalidTemplate(BookingError):
    code = "INVALID_TEMPLATE"


class CannotDeactivateLinkedPublished(BookingError):
    status_code = 409
    code = "CANNOT_DEACTIVATE_LINKED_PUBLISHED"


# ── Activities / packages ────────────────────────────────────────────────


class ActivityNotPublished(BookingError):
    code = "ACTIVITY_NOT_PUBLISHED"


class BusinessNotActive(BookingError):
    code = "BUSINESS_NOT_ACTIVE"


class InvalidPackages(BookingError):
    code = "INVALID_PACKAGES"


class PackageNotFound(BookingError):
    code = "PACKAGE_NOT_FOUND"


class MinParticipantsNotMet(BookingError):
    code = "MIN_PARTICIPANTS_NOT_MET"


class MaxParticipantsExceeded(BookingError):
    code = "MAX_PARTICIPANTS_EXCEEDED"


# ── Booking ──────────────────────────────────────────────────────────────


class ProfileIncomplete(BookingError):
    code = "PROFILE_INCOMPLETE"


class SlotInPast(BookingError):
    code = "SLOT_IN_PAST"


class SlotFull(BookingError):
    """Capacity race lost. Never retried; surfaced so the client can re-resolve."""

    status_code = 409
    code = "SLOT_FULL"


class CancellationWindowClosed(BookingError):
    status_code = 409
    code = "CANCELLATION_WINDOW_CLOSED"


class BookingNotCancellable(BookingError):
    status_code = 409
    code = "BOOKING_NOT_CANCELLABLE"


class Unauthorized(BookingError):
    status_code = 401
    code = "UNAUTHORIZED"
