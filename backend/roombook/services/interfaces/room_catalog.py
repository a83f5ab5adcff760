"""
Room catalog interface.
Room CRUD belongs to the catalog service; the engine only needs a snapshot of
capacity, active flag and booking version.
"""

from abc import ABC, abstractmethod
from typing import Optional

from roombook.domain.policy import RoomSnapshot


class RoomCatalog(ABC):

    @abstractmethod
    async def get_room(self, room_id: int) -> Optional[RoomSnapshot]:
        """
        Look up a room.

        Returns:
            The room snapshot, or None if no such room exists
        """
        pass
