"""
Reservation repository interface.
The engine only talks to storage through this contract, so the SQL adapter can
be swapped (or faked in tests) without touching admission or lifecycle logic.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from roombook.domain.interval import Interval
from roombook.domain.lifecycle import ReservationStatus
from roombook.models.reservation import Reservation


class ConcurrentBookingError(Exception):
    """
    The room's booking version moved between the conflict check and the write.
    Not a rejection: the caller re-reads and re-checks.
    """

    def __init__(self, room_id: int, expected_version: int):
        self.room_id = room_id
        self.expected_version = expected_version
        super().__init__(f"Room {room_id} changed since version {expected_version}")


@dataclass(frozen=True)
class ReservationQuery:
    user_id: Optional[int] = None
    room_id: Optional[int] = None
    status: Optional[ReservationStatus] = None
    start_from: Optional[datetime] = None
    start_to: Optional[datetime] = None
    sort_by: str = "start_time"  # start_time, created_at, updated_at
    sort_order: str = "asc"
    page: int = 1
    limit: int = 10


class ReservationRepository(ABC):
    """
    Persistence contract for reservations.

    Read methods raise StorageReadFailed on store errors; write methods raise
    StorageWriteFailed. Neither is ever converted into an empty result.
    """

    @abstractmethod
    async def find_by_id(self, reservation_id: int) -> Optional[Reservation]:
        pass

    @abstractmethod
    async def find_active_by_room_and_range(
        self,
        room_id: int,
        interval: Interval,
        exclude_id: Optional[int] = None,
    ) -> list[Reservation]:
        """Active (pending/confirmed) reservations on the room intersecting the interval."""
        pass

    @abstractmethod
    async def insert(self, reservation: Reservation, expected_room_version: int) -> Reservation:
        """
        Persist a new reservation atomically with the room-version bump.

        Raises:
            ConcurrentBookingError: the room version no longer matches
            SlotUnavailable: the store's overlap constraint rejected the row
        """
        pass

    @abstractmethod
    async def update_status(
        self,
        reservation_id: int,
        new_status: ReservationStatus,
        expected_room_version: Optional[int] = None,
    ) -> Reservation:
        """
        Change a reservation's status.

        When ``expected_room_version`` is given the room-version bump guards the
        write the same way ``insert`` does (used when reactivating a booking).

        Raises:
            ReservationNotFound, ConcurrentBookingError, SlotUnavailable
        """
        pass

    @abstractmethod
    async def search(self, query: ReservationQuery) -> tuple[list[Reservation], int]:
        """Filtered, sorted page of reservations plus the total match count."""
        pass

    @abstractmethod
    async def list_upcoming(
        self, now: datetime, limit: int, user_id: Optional[int] = None
    ) -> list[Reservation]:
        pass

    @abstractmethod
    async def count_by_status(self) -> dict[str, int]:
        pass

    @abstractmethod
    async def count_starting_between(
        self,
        start: datetime,
        end: datetime,
        statuses: Optional[frozenset] = None,
    ) -> int:
        pass

    @abstractmethod
    async def complete_elapsed(self, now: datetime) -> int:
        """Persist confirmed -> completed for every reservation whose end has passed."""
        pass
