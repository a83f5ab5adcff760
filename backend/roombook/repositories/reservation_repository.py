"""
Reservation repository on SQLAlchemy (PostgreSQL in production, SQLite in tests).

ATOMICITY OF THE NO-OVERLAP INVARIANT
=====================================

Problem:
  Two requests for overlapping slots on the same room both run the conflict
  check, both see a free room, both insert. Result: double booking.

Solution (all backends): optimistic locking on the room row.

  1. The caller reads rooms.booking_version together with the room snapshot
  2. The caller runs the conflict check
  3. In the same transaction as the INSERT:
       UPDATE rooms SET booking_version = booking_version + 1
       WHERE id = :room_id AND booking_version = :seen_version
  4. rowcount == 0 means another writer booked this room after step 1;
     ConcurrentBookingError tells the caller to re-read and re-check

  Writers on one room serialize on the row lock taken by step 3. Under READ
  COMMITTED the losing UPDATE re-evaluates its WHERE clause after the winner
  commits and matches nothing, so it never writes against a stale check.

Safety net (PostgreSQL): the excl_reservations_room_active_overlap exclusion
constraint rejects any overlapping active row regardless of application
logic. A violation surfaces as SlotUnavailable.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roombook.core.errors import (
    ReservationNotFound,
    SlotUnavailable,
    StorageReadFailed,
    StorageWriteFailed,
)
from roombook.core.logging import get_logger
from roombook.db.base import utcnow
from roombook.domain.interval import Interval
from roombook.domain.lifecycle import ACTIVE_STATUSES, ReservationStatus
from roombook.models.reservation import OVERLAP_CONSTRAINT_NAME, Reservation
from roombook.models.room import Room
from roombook.services.interfaces.repository import (
    ConcurrentBookingError,
    ReservationQuery,
    ReservationRepository,
)

logger = get_logger(__name__)

ACTIVE_STATUS_VALUES = tuple(s.value for s in ACTIVE_STATUSES)
SORTABLE_COLUMNS = {
    "start_time": Reservation.start_time,
    "created_at": Reservation.created_at,
    "updated_at": Reservation.updated_at,
}


@contextmanager
def _reading(operation: str):
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("reservation_store_read_failed", operation=operation, error=str(e))
        raise StorageReadFailed() from e


@contextmanager
def _writing(operation: str):
    try:
        yield
    except IntegrityError as e:
        if OVERLAP_CONSTRAINT_NAME in str(e.orig):
            logger.warning("reservation_overlap_constraint", operation=operation)
            raise SlotUnavailable() from e
        logger.error("reservation_store_write_failed", operation=operation, error=str(e))
        raise StorageWriteFailed() from e
    except SQLAlchemyError as e:
        logger.error("reservation_store_write_failed", operation=operation, error=str(e))
        raise StorageWriteFailed() from e


class SqlAlchemyReservationRepository(ReservationRepository):

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, reservation_id: int) -> Optional[Reservation]:
        with _reading("find_by_id"):
            result = await self.db.execute(
                select(Reservation).where(Reservation.id == reservation_id)
            )
            return result.scalar_one_or_none()

    async def find_active_by_room_and_range(
        self,
        room_id: int,
        interval: Interval,
        exclude_id: Optional[int] = None,
    ) -> list[Reservation]:
        # Same half-open predicate as Interval.overlaps, pushed down to the
        # ix_reservations_availability index
        conditions = [
            Reservation.room_id == room_id,
            Reservation.status.in_(ACTIVE_STATUS_VALUES),
            Reservation.start_time < interval.end,
            Reservation.end_time > interval.start,
        ]
        if exclude_id is not None:
            conditions.append(Reservation.id != exclude_id)

        with _reading("find_active_by_room_and_range"):
            result = await self.db.execute(
                select(Reservation).where(*conditions).order_by(Reservation.start_time)
            )
            return list(result.scalars().all())

    async def _bump_room_version(self, room_id: int, expected_version: int) -> None:
        result = await self.db.execute(
            update(Room)
            .where(Room.id == room_id, Room.booking_version == expected_version)
            .values(booking_version=Room.booking_version + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrentBookingError(room_id, expected_version)

    async def insert(self, reservation: Reservation, expected_room_version: int) -> Reservation:
        with _writing("insert"):
            await self._bump_room_version(reservation.room_id, expected_room_version)
            self.db.add(reservation)
            await self.db.flush()
            await self.db.refresh(reservation)
        return reservation

    async def update_status(
        self,
        reservation_id: int,
        new_status: ReservationStatus,
        expected_room_version: Optional[int] = None,
    ) -> Reservation:
        reservation = await self.find_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFound()

        with _writing("update_status"):
            if expected_room_version is not None:
                await self._bump_room_version(reservation.room_id, expected_room_version)
            reservation.status = ReservationStatus(new_status).value
            await self.db.flush()
            await self.db.refresh(reservation)
        return reservation

    async def search(self, query: ReservationQuery) -> tuple[list[Reservation], int]:
        stmt = select(Reservation)
        if query.user_id is not None:
            stmt = stmt.where(Reservation.user_id == query.user_id)
        if query.room_id is not None:
            stmt = stmt.where(Reservation.room_id == query.room_id)
        if query.status is not None:
            stmt = stmt.where(Reservation.status == ReservationStatus(query.status).value)
        if query.start_from is not None:
            stmt = stmt.where(Reservation.start_time >= query.start_from)
        if query.start_to is not None:
            stmt = stmt.where(Reservation.start_time <= query.start_to)

        column = SORTABLE_COLUMNS.get(query.sort_by, Reservation.start_time)
        ordering = column.desc() if query.sort_order == "desc" else column.asc()

        with _reading("search"):
            count_query = select(func.count()).select_from(stmt.subquery())
            total = (await self.db.execute(count_query)).scalar() or 0

            result = await self.db.execute(
                stmt.order_by(ordering, Reservation.id)
                .offset((query.page - 1) * query.limit)
                .limit(query.limit)
            )
            return list(result.scalars().all()), total

    async def list_upcoming(
        self, now: datetime, limit: int, user_id: Optional[int] = None
    ) -> list[Reservation]:
        stmt = select(Reservation).where(
            Reservation.start_time >= now,
            Reservation.status.in_(ACTIVE_STATUS_VALUES),
        )
        if user_id is not None:
            stmt = stmt.where(Reservation.user_id == user_id)

        with _reading("list_upcoming"):
            result = await self.db.execute(stmt.order_by(Reservation.start_time).limit(limit))
            return list(result.scalars().all())

    async def count_by_status(self) -> dict[str, int]:
        with _reading("count_by_status"):
            result = await self.db.execute(
                select(Reservation.status, func.count()).group_by(Reservation.status)
            )
            counts = {s.value: 0 for s in ReservationStatus}
            for status_value, count in result.all():
                counts[status_value] = count
            return counts

    async def count_starting_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Optional[frozenset] = None,
    ) -> int:
        stmt = select(func.count()).select_from(Reservation).where(
            Reservation.start_time >= start,
            Reservation.start_time < end,
        )
        if statuses:
            stmt = stmt.where(Reservation.status.in_([ReservationStatus(s).value for s in statuses]))

        with _reading("count_starting_between"):
            return (await self.db.execute(stmt)).scalar() or 0

    async def complete_elapsed(self, now: datetime) -> int:
        with _writing("complete_elapsed"):
            result = await self.db.execute(
                update(Reservation)
                .where(
                    Reservation.status == ReservationStatus.CONFIRMED.value,
                    Reservation.end_time <= now,
                )
                .values(status=ReservationStatus.COMPLETED.value, updated_at=utcnow())
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount or 0
