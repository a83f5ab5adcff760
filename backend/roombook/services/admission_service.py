"""
Admission control for new reservations.

Rules run in a fixed order and the first violation wins:

  1. room exists and is active           -> RoomUnavailable
  2. attendees <= room capacity          -> CapacityExceeded
  3. start strictly in the future        -> InvalidStart
  4. end after start                     -> InvalidInterval
  5. duration within policy bounds       -> DurationTooShort / DurationTooLong
  6. no overlapping active reservation   -> SlotUnavailable

Rules 2-5 are cheap and specific, so malformed requests are rejected before
any reservation rows are read. Only rule 6 touches the reservation store.

Admission alone does not guarantee the slot: the write that follows must go
through the repository's room-version check (see reservation_repository).
"""

from dataclasses import dataclass
from datetime import datetime

from roombook.core.errors import RoomUnavailable, SlotUnavailable
from roombook.core.logging import get_logger
from roombook.domain.interval import Interval
from roombook.domain.policy import BookingPolicy, ReservationCandidate, RoomSnapshot
from roombook.services.conflict_service import ConflictDetector
from roombook.services.interfaces.room_catalog import RoomCatalog

logger = get_logger(__name__)


@dataclass(frozen=True)
class AdmissionDecision:
    room: RoomSnapshot
    interval: Interval


class AdmissionService:

    def __init__(self, rooms: RoomCatalog, conflicts: ConflictDetector, policy: BookingPolicy):
        self.rooms = rooms
        self.conflicts = conflicts
        self.policy = policy

    async def get_bookable_room(self, room_id: int) -> RoomSnapshot:
        room = await self.rooms.get_room(room_id)
        if room is None or not room.is_active:
            raise RoomUnavailable()
        return room

    async def admit(self, candidate: ReservationCandidate, now: datetime) -> AdmissionDecision:
        """
        Decide whether the candidate may be booked.

        Returns:
            The room snapshot (including the booking version the write must
            match) and the validated interval
        """
        room = await self.get_bookable_room(candidate.room_id)
        interval = self.policy.validate(candidate, room, now)

        conflicts = await self.conflicts.find_conflicts(room.id, interval)
        if conflicts:
            logger.info(
                "admission_slot_conflict",
                room_id=room.id,
                start=interval.start.isoformat(),
                end=interval.end.isoformat(),
                conflicting_ids=[r.id for r in conflicts],
            )
            raise SlotUnavailable(conflicting_ids=[r.id for r in conflicts])

        return AdmissionDecision(room=room, interval=interval)
