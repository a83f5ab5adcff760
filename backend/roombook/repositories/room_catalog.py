"""
Room catalog backed by the rooms table.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roombook.core.errors import StorageReadFailed
from roombook.core.logging import get_logger
from roombook.domain.policy import RoomSnapshot
from roombook.models.room import Room
from roombook.services.interfaces.room_catalog import RoomCatalog

logger = get_logger(__name__)


class SqlAlchemyRoomCatalog(RoomCatalog):

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_room(self, room_id: int) -> Optional[RoomSnapshot]:
        # populate_existing: booking_version must come from the row, never the identity map
        query = (
            select(Room)
            .where(Room.id == room_id)
            .execution_options(populate_existing=True)
        )
        try:
            room = (await self.db.execute(query)).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("room_lookup_failed", room_id=room_id, error=str(e))
            raise StorageReadFailed() from e

        if room is None:
            return None
        return RoomSnapshot(
            id=room.id,
            capacity=room.capacity,
            is_active=room.is_active,
            booking_version=room.booking_version,
            name=room.name,
        )
