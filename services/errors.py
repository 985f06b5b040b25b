"""Errors raised by the reservation store.

Routes never build these responses by hand; the app-level error handler
renders any ``BookingError`` as ``{"error": ..., "code": ...}`` with ``status``.
"""


class BookingError(Exception):
    code = "booking_error"
    status = 400
    default_message = "Booking request failed"

    def __init__(self, message=None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BookingError):
    """Malformed draft: bad duration, bad start time, missing max players..."""
    code = "validation_error"
    status = 400
    default_message = "Invalid booking details"


class SlotUnavailable(BookingError):
    code = "slot_unavailable"
    status = 409
    default_message = "That time overlaps an existing booking"


class CapacityExceeded(BookingError):
    code = "capacity_exceeded"
    status = 409
    default_message = "Session is full"


class ClosedSession(BookingError):
    code = "closed_session"
    status = 409
    default_message = "Cannot join a closed session"


class NotFound(BookingError):
    code = "not_found"
    status = 404
    default_message = "Booking not found"


class DuplicateParticipant(BookingError):
    code = "duplicate_participant"
    status = 409
    default_message = "You are already in this session"


class NotOwner(BookingError):
    code = "not_owner"
    status = 403
    default_message = "Only the creator can delete this booking"


class StoreFailure(BookingError):
    code = "store_failure"
    status = 503
    default_message = "Booking store unavailable. Try again."
