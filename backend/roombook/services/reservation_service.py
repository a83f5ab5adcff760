"""
Reservation service: creation, cancellation, status changes and read models.

CONCURRENCY STRATEGY: Optimistic room version with re-check
===========================================================

Problem:
  Two users request overlapping slots on the same room simultaneously.
  Both conflict checks see a free room, both insert. Result: double booking.

Solution:
  Admission returns the room's booking_version together with the verdict.
  The insert is conditional on that version still being current (the
  repository bumps it in the same transaction). If another booking landed in
  between, the version moved: we re-run admission, which now sees the new
  reservation and either finds the slot still free (non-overlapping request)
  or rejects with SlotUnavailable.

  - Business rejections are never retried
  - Only version mismatches are retried, up to policy.max_retries
  - StorageReadFailed from admission is safe for the caller to retry;
    StorageWriteFailed is surfaced as-is because the write may have applied
"""

import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from roombook.core.config import get_settings
from roombook.core.errors import (
    AdminRequired,
    InvalidStatus,
    NotReservationOwner,
    ReservationError,
    ReservationNotFound,
    SlotUnavailable,
)
from roombook.core.logging import get_logger
from roombook.core.metrics import (
    admission_latency,
    booking_retries,
    record_reservation_attempt,
    record_transition,
    sweep_completed,
)
from roombook.domain.interval import Interval
from roombook.domain.lifecycle import (
    ACTIVE_STATUSES,
    Actor,
    ReservationState,
    ReservationStatus,
    authorize_cancel,
    can_transition,
)
from roombook.domain.policy import BookingPolicy, ReservationCandidate
from roombook.models.reservation import Reservation
from roombook.repositories import SqlAlchemyReservationRepository, SqlAlchemyRoomCatalog
from roombook.services.admission_service import AdmissionService
from roombook.services.conflict_service import ConflictDetector
from roombook.services.interfaces.repository import (
    ConcurrentBookingError,
    ReservationQuery,
    ReservationRepository,
)
from roombook.services.interfaces.room_catalog import RoomCatalog

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _state(reservation: Reservation) -> ReservationState:
    return ReservationState(
        user_id=reservation.user_id,
        status=reservation.status,
        start=reservation.start_time,
        end=reservation.end_time,
    )


class ReservationService:

    def __init__(
        self,
        repository: ReservationRepository,
        rooms: RoomCatalog,
        policy: BookingPolicy,
    ):
        self.repository = repository
        self.rooms = rooms
        self.policy = policy
        self.conflicts = ConflictDetector(repository)
        self.admission = AdmissionService(rooms, self.conflicts, policy)

    async def _get_or_404(self, reservation_id: int) -> Reservation:
        reservation = await self.repository.find_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound()
        return reservation

    # Core operations

    async def create_reservation(
        self,
        user_id: int,
        room_id: int,
        start: datetime,
        end: datetime,
        attendees: int,
        purpose: str,
        special_requirements: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Admit and persist a reservation.
        Retries up to policy.max_retries when the room's booking version moves.
        """
        now = now or _utcnow()
        candidate = ReservationCandidate(
            user_id=user_id,
            room_id=room_id,
            start=start,
            end=end,
            attendees=attendees,
            purpose=purpose.strip(),
            special_requirements=special_requirements.strip() if special_requirements else None,
        )
        started = time.perf_counter()

        try:
            for attempt in range(1, self.policy.max_retries + 1):
                decision = await self.admission.admit(candidate, now)

                reservation = Reservation(
                    room_id=room_id,
                    user_id=user_id,
                    start_time=decision.interval.start,
                    end_time=decision.interval.end,
                    attendees=attendees,
                    purpose=candidate.purpose,
                    special_requirements=candidate.special_requirements,
                    status=self.policy.initial_status.value,
                )
                try:
                    reservation = await self.repository.insert(
                        reservation, decision.room.booking_version
                    )
                except ConcurrentBookingError:
                    booking_retries.inc()
                    logger.info(
                        "reservation_retry",
                        room_id=room_id,
                        attempt=attempt,
                        reason="room_version_conflict",
                    )
                    continue

                record_reservation_attempt("created")
                logger.info(
                    "reservation_created",
                    reservation_id=reservation.id,
                    room_id=room_id,
                    user_id=user_id,
                    start=reservation.start_time.isoformat(),
                    end=reservation.end_time.isoformat(),
                    status=reservation.status,
                    attempt=attempt,
                )
                return reservation

            logger.warning("reservation_retries_exhausted", room_id=room_id, user_id=user_id)
            raise SlotUnavailable(
                "Booking failed due to high demand for this room. Please try again."
            )
        except ReservationError as e:
            record_reservation_attempt(e.code)
            logger.info(
                "reservation_rejected",
                code=e.code,
                room_id=room_id,
                user_id=user_id,
                reason=e.message,
            )
            raise
        finally:
            admission_latency.observe(time.perf_counter() - started)

    async def cancel_reservation(
        self,
        reservation_id: int,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Cancel a reservation.

        Owners may cancel their confirmed reservations up to the lead time
        before start; admins may cancel any active reservation. Cancelling a
        reservation that is already cancelled or completed is rejected with
        ReservationTerminal for every actor.
        """
        now = now or _utcnow()
        reservation = await self._get_or_404(reservation_id)

        try:
            authorize_cancel(actor, _state(reservation), now, self.policy.cancellation_lead_time)
        except ReservationError as e:
            logger.info(
                "cancellation_rejected",
                reservation_id=reservation_id,
                actor_id=actor.id,
                actor_role=actor.role.value,
                code=e.code,
            )
            raise

        # Cancelling only shrinks the active set, so no room-version guard
        reservation = await self.repository.update_status(
            reservation_id, ReservationStatus.CANCELLED
        )
        record_transition(ReservationStatus.CANCELLED.value, actor.role.value)
        logger.info(
            "reservation_cancelled",
            reservation_id=reservation.id,
            room_id=reservation.room_id,
            actor_id=actor.id,
            actor_role=actor.role.value,
        )
        return reservation

    async def check_availability(
        self,
        room_id: int,
        start: datetime,
        end: datetime,
        exclude_reservation_id: Optional[int] = None,
    ) -> bool:
        await self.admission.get_bookable_room(room_id)
        interval = Interval(start, end)
        return not await self.conflicts.has_conflict(room_id, interval, exclude_reservation_id)

    async def update_reservation_status(
        self,
        reservation_id: int,
        new_status: str,
        actor: Actor,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Administrative status override.

        Setting the current status again is a no-op. Moving a cancelled or
        completed reservation back to pending/confirmed re-checks the slot
        (excluding the reservation itself) under the room-version guard.
        """
        now = now or _utcnow()
        try:
            target = ReservationStatus(new_status)
        except ValueError:
            raise InvalidStatus() from None

        reservation = await self._get_or_404(reservation_id)
        if not can_transition(
            actor, _state(reservation), target, now, self.policy.cancellation_lead_time
        ):
            raise AdminRequired()

        current = ReservationStatus(reservation.status)
        if current is target:
            return reservation

        if target not in ACTIVE_STATUSES or current in ACTIVE_STATUSES:
            reservation = await self.repository.update_status(reservation_id, target)
        else:
            reservation = await self._reactivate(reservation, target)

        record_transition(target.value, actor.role.value)
        logger.info(
            "reservation_status_updated",
            reservation_id=reservation.id,
            from_status=current.value,
            to_status=target.value,
            actor_id=actor.id,
        )
        return reservation

    async def _reactivate(self, reservation: Reservation, target: ReservationStatus) -> Reservation:
        interval = Interval(reservation.start_time, reservation.end_time)

        for attempt in range(1, self.policy.max_retries + 1):
            room = await self.admission.get_bookable_room(reservation.room_id)
            if await self.conflicts.has_conflict(
                reservation.room_id, interval, exclude_reservation_id=reservation.id
            ):
                raise SlotUnavailable(
                    "Cannot reactivate: the slot is now held by another reservation"
                )
            try:
                return await self.repository.update_status(
                    reservation.id, target, expected_room_version=room.booking_version
                )
            except ConcurrentBookingError:
                booking_retries.inc()
                logger.info(
                    "reservation_retry",
                    room_id=reservation.room_id,
                    attempt=attempt,
                    reason="room_version_conflict",
                )

        raise SlotUnavailable("Reactivation failed due to high demand for this room. Please try again.")

    async def complete_elapsed_reservations(self, now: Optional[datetime] = None) -> int:
        """
        Persist confirmed -> completed for every reservation whose end has passed.
        Idempotent; safe to run from any scheduler.
        """
        now = now or _utcnow()
        completed = await self.repository.complete_elapsed(now)
        if completed:
            sweep_completed.inc(completed)
            record_transition(ReservationStatus.COMPLETED.value, "system")
        logger.info("reservation_sweep_finished", completed=completed, cutoff=now.isoformat())
        return completed

    # Read models

    async def get_reservation(self, reservation_id: int, actor: Actor) -> Reservation:
        reservation = await self._get_or_404(reservation_id)
        if not actor.is_admin and reservation.user_id != actor.id:
            raise NotReservationOwner(
                "Access denied. You can only view your own reservations."
            )
        return reservation

    async def list_reservations(self, query: ReservationQuery) -> tuple[list[Reservation], int]:
        return await self.repository.search(query)

    async def list_upcoming_reservations(
        self, actor: Actor, limit: int = 5, now: Optional[datetime] = None
    ) -> list[Reservation]:
        now = now or _utcnow()
        user_id = None if actor.is_admin else actor.id
        return await self.repository.list_upcoming(now, limit, user_id=user_id)

    async def get_reservation_stats(self, now: Optional[datetime] = None) -> dict:
        now = now or _utcnow()
        by_status = await self.repository.count_by_status()

        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        tomorrow = today + timedelta(days=1)
        # Weeks start on Sunday
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)
        week_end = week_start + timedelta(days=7)

        todays = await self.repository.count_starting_between(today, tomorrow, ACTIVE_STATUSES)
        weekly = await self.repository.count_starting_between(week_start, week_end)

        return {
            "total_reservations": sum(by_status.values()),
            "pending_reservations": by_status[ReservationStatus.PENDING.value],
            "confirmed_reservations": by_status[ReservationStatus.CONFIRMED.value],
            "cancelled_reservations": by_status[ReservationStatus.CANCELLED.value],
            "completed_reservations": by_status[ReservationStatus.COMPLETED.value],
            "active_reservations": (
                by_status[ReservationStatus.PENDING.value]
                + by_status[ReservationStatus.CONFIRMED.value]
            ),
            "todays_reservations": todays,
            "weekly_reservations": weekly,
        }


def build_reservation_service(
    db: AsyncSession, policy: Optional[BookingPolicy] = None
) -> ReservationService:
    return ReservationService(
        repository=SqlAlchemyReservationRepository(db),
        rooms=SqlAlchemyRoomCatalog(db),
        policy=policy or BookingPolicy.from_settings(get_settings()),
    )
