"""
Reservation lifecycle state machine.

States: pending, confirmed, cancelled, completed. Cancelled and completed are
terminal. Transitions and the actors allowed to trigger them:

    pending/confirmed -> cancelled   owner, only while confirmed and before
                                     start - cancellation lead time
    pending/confirmed -> cancelled   admin, unconditionally
    any -> any status                admin, explicit override
    confirmed -> completed           system, once the end has passed

All permission decisions go through ``can_transition`` so the table above is
the single place roles are interpreted.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from roombook.core.errors import (
    CancellationWindowClosed,
    NotReservationOwner,
    ReservationTerminal,
)


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


ACTIVE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset({ReservationStatus.CANCELLED, ReservationStatus.COMPLETED})


class ActorRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    """An already-authenticated caller. ``id`` is None for the system actor."""

    id: Optional[int]
    role: ActorRole = ActorRole.USER

    @classmethod
    def user(cls, user_id: int) -> "Actor":
        return cls(id=user_id, role=ActorRole.USER)

    @classmethod
    def admin(cls, user_id: Optional[int] = None) -> "Actor":
        return cls(id=user_id, role=ActorRole.ADMIN)

    @classmethod
    def system(cls) -> "Actor":
        return cls(id=None, role=ActorRole.SYSTEM)

    @property
    def is_admin(self) -> bool:
        return self.role is ActorRole.ADMIN


@dataclass(frozen=True)
class ReservationState:
    """The slice of a reservation the state machine needs."""

    user_id: int
    status: ReservationStatus
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", ReservationStatus(self.status))


def is_terminal(status: ReservationStatus) -> bool:
    return ReservationStatus(status) in TERMINAL_STATUSES


def is_active(status: ReservationStatus) -> bool:
    return ReservationStatus(status) in ACTIVE_STATUSES


def effective_status(status: ReservationStatus, end: datetime, now: datetime) -> ReservationStatus:
    """Status as seen by readers: a confirmed booking whose end has passed is completed."""
    status = ReservationStatus(status)
    if status is ReservationStatus.CONFIRMED and now >= end:
        return ReservationStatus.COMPLETED
    return status


def _owner_may_cancel(
    reservation: ReservationState, now: datetime, lead_time: timedelta
) -> bool:
    return (
        reservation.status is ReservationStatus.CONFIRMED
        and now < reservation.start - lead_time
    )


def can_transition(
    actor: Actor,
    reservation: ReservationState,
    target: ReservationStatus,
    now: datetime,
    lead_time: timedelta,
) -> bool:
    target = ReservationStatus(target)
    current = ReservationStatus(reservation.status)

    if actor.role is ActorRole.ADMIN:
        return True

    if actor.role is ActorRole.SYSTEM:
        return (
            current is ReservationStatus.CONFIRMED
            and target is ReservationStatus.COMPLETED
            and now >= reservation.end
        )

    if actor.id != reservation.user_id:
        return False
    if target is not ReservationStatus.CANCELLED or current not in ACTIVE_STATUSES:
        return False
    return _owner_may_cancel(reservation, now, lead_time)


def authorize_cancel(
    actor: Actor,
    reservation: ReservationState,
    now: datetime,
    lead_time: timedelta,
) -> None:
    """Raise the precise rejection for a cancel request, or return if allowed.

    Ownership is checked first, then terminal state, then the owner's
    lead-time window.
    """
    if not actor.is_admin and actor.id != reservation.user_id:
        raise NotReservationOwner(
            "Access denied. You can only cancel your own reservations."
        )

    if is_terminal(reservation.status):
        raise ReservationTerminal(
            f"Reservation is already {ReservationStatus(reservation.status).value}"
        )

    if can_transition(actor, reservation, ReservationStatus.CANCELLED, now, lead_time):
        return

    hours = lead_time.total_seconds() / 3600
    raise CancellationWindowClosed(
        "Reservation cannot be cancelled. Only confirmed reservations can be "
        f"cancelled, at least {hours:g} hours before start time."
    )
