"""
Conflict detection for a candidate slot on a room.

Only active reservations (pending, confirmed) hold a slot. The repository
narrows the candidates with an indexed range query; the final decision always
goes through Interval.overlaps so there is exactly one definition of overlap.

Storage errors propagate (StorageReadFailed). A failed read is never reported
as "no conflict".
"""

from typing import Optional

from roombook.domain.interval import Interval
from roombook.models.reservation import Reservation
from roombook.services.interfaces.repository import ReservationRepository


class ConflictDetector:

    def __init__(self, repository: ReservationRepository):
        self.repository = repository

    async def find_conflicts(
        self,
        room_id: int,
        interval: Interval,
        exclude_reservation_id: Optional[int] = None,
    ) -> list[Reservation]:
        existing = await self.repository.find_active_by_room_and_range(
            room_id, interval, exclude_id=exclude_reservation_id
        )
        return [
            reservation
            for reservation in existing
            if reservation.id != exclude_reservation_id
            and Interval(reservation.start_time, reservation.end_time).overlaps(interval)
        ]

    async def has_conflict(
        self,
        room_id: int,
        interval: Interval,
        exclude_reservation_id: Optional[int] = None,
    ) -> bool:
        conflicts = await self.find_conflicts(room_id, interval, exclude_reservation_id)
        return bool(conflicts)
