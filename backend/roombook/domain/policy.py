"""
Admission rules that need no storage access.

The full admission order is:
  1. room exists and is active
  2. attendees <= room capacity
  3. start is strictly in the future
  4. end is after start
  5. duration within [min_duration, max_duration]
  6. no conflicting active reservation

Rules 2-5 live here as ``BookingPolicy.validate``. Rule 1 needs the room
catalog and rule 6 the reservation store; AdmissionService runs them around
this check. The first failing rule wins.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from roombook.core.config import Settings
from roombook.core.errors import (
    CapacityExceeded,
    DurationTooLong,
    DurationTooShort,
    InvalidAttendees,
    InvalidInterval,
    InvalidStart,
)
from roombook.domain.interval import Interval, ensure_utc
from roombook.domain.lifecycle import ReservationStatus


@dataclass(frozen=True)
class RoomSnapshot:
    id: int
    capacity: int
    is_active: bool
    booking_version: int = 1
    name: Optional[str] = None


@dataclass(frozen=True)
class ReservationCandidate:
    user_id: int
    room_id: int
    start: datetime
    end: datetime
    attendees: int
    purpose: str
    special_requirements: Optional[str] = None


def _format_minutes(value: timedelta) -> str:
    minutes = int(value.total_seconds() // 60)
    if minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour" + ("s" if hours != 1 else "")
    return f"{minutes} minutes"


@dataclass(frozen=True)
class BookingPolicy:
    min_duration: timedelta = timedelta(minutes=30)
    max_duration: timedelta = timedelta(hours=8)
    cancellation_lead_time: timedelta = timedelta(hours=2)
    requires_approval: bool = False
    max_retries: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> "BookingPolicy":
        return cls(
            min_duration=timedelta(minutes=settings.MIN_BOOKING_MINUTES),
            max_duration=timedelta(minutes=settings.MAX_BOOKING_MINUTES),
            cancellation_lead_time=timedelta(minutes=settings.CANCELLATION_LEAD_MINUTES),
            requires_approval=settings.RESERVATION_REQUIRES_APPROVAL,
            max_retries=settings.BOOKING_MAX_RETRIES,
        )

    @property
    def initial_status(self) -> ReservationStatus:
        if self.requires_approval:
            return ReservationStatus.PENDING
        return ReservationStatus.CONFIRMED

    def validate(
        self,
        candidate: ReservationCandidate,
        room: RoomSnapshot,
        now: datetime,
    ) -> Interval:
        """Apply rules 2-5 and return the validated interval."""
        if candidate.attendees < 1:
            raise InvalidAttendees()

        if candidate.attendees > room.capacity:
            raise CapacityExceeded(
                f"Room capacity exceeded. Maximum capacity: {room.capacity}",
                capacity=room.capacity,
                attendees=candidate.attendees,
            )

        start = ensure_utc(candidate.start)
        end = ensure_utc(candidate.end)

        if start <= ensure_utc(now):
            raise InvalidStart()

        if end <= start:
            raise InvalidInterval()

        interval = Interval(start, end)
        if interval.duration < self.min_duration:
            raise DurationTooShort(
                f"Minimum booking duration is {_format_minutes(self.min_duration)}"
            )
        if interval.duration > self.max_duration:
            raise DurationTooLong(
                f"Maximum booking duration is {_format_minutes(self.max_duration)}"
            )
        return interval
