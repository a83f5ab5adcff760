"""
Reservation rejection taxonomy.

Every rejection raised by the engine is a ReservationError subclass with a
stable machine-readable ``code``. The ``kind`` groups codes into the abstract
categories callers branch on (not found, validation, capacity, slot conflict,
access denied, storage), and ``status_code`` is the HTTP mapping used by the
API exception handler.

No two codes share a class, so clients can always tell a capacity rejection
from a slot conflict.
"""

from fastapi import status


class ReservationError(Exception):
    code = "reservation_error"
    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False
    default_message = "Reservation request rejected"

    def __init__(self, message: str | None = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "code": self.code,
            "kind": self.kind,
            "retryable": self.retryable,
        }


# NotFound

class NotFoundError(ReservationError):
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class RoomUnavailable(NotFoundError):
    code = "room_unavailable"
    default_message = "Room not found or not available"


class ReservationNotFound(NotFoundError):
    code = "reservation_not_found"
    default_message = "Reservation not found"


# ValidationFailure

class ValidationFailure(ReservationError):
    kind = "validation_failure"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidStart(ValidationFailure):
    code = "invalid_start"
    default_message = "Start time must be in the future"


class InvalidInterval(ValidationFailure):
    code = "invalid_interval"
    default_message = "End time must be after start time"


class DurationTooShort(ValidationFailure):
    code = "duration_too_short"
    default_message = "Booking is shorter than the minimum duration"


class DurationTooLong(ValidationFailure):
    code = "duration_too_long"
    default_message = "Booking is longer than the maximum duration"


class InvalidAttendees(ValidationFailure):
    code = "invalid_attendees"
    default_message = "There must be at least 1 attendee"


class ReservationTerminal(ValidationFailure):
    code = "reservation_terminal"
    default_message = "Reservation is already in a terminal state"


class InvalidStatus(ValidationFailure):
    code = "invalid_status"
    default_message = "Status must be one of: pending, confirmed, cancelled, completed"


# CapacityExceeded

class CapacityExceeded(ReservationError):
    code = "capacity_exceeded"
    kind = "capacity_exceeded"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Room capacity exceeded"


# SlotConflict

class SlotUnavailable(ReservationError):
    code = "slot_unavailable"
    kind = "slot_conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Room is not available for the selected time slot"


# AccessDenied

class AccessDenied(ReservationError):
    kind = "access_denied"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotReservationOwner(AccessDenied):
    code = "not_reservation_owner"
    default_message = "Access denied. You can only manage your own reservations."


class CancellationWindowClosed(AccessDenied):
    code = "cancellation_window_closed"
    default_message = "Reservation can no longer be cancelled"


class AdminRequired(AccessDenied):
    code = "admin_required"
    default_message = "Administrator role required"


# StorageFailure

class StorageFailure(ReservationError):
    kind = "storage_failure"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class StorageReadFailed(StorageFailure):
    """Nothing was written; the whole operation can be retried."""

    code = "storage_read_failed"
    retryable = True
    default_message = "Reservation store is temporarily unavailable"


class StorageWriteFailed(StorageFailure):
    """The write may or may not have been applied; never retried blindly."""

    code = "storage_write_failed"
    default_message = "Reservation store failed while saving; check before retrying"
