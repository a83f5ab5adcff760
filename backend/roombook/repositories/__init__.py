"""
SQLAlchemy implementations of the storage contracts.
"""

from .reservation_repository import SqlAlchemyReservationRepository
from .room_catalog import SqlAlchemyRoomCatalog

__all__ = ['SqlAlchemyReservationRepository', 'SqlAlchemyRoomCatalog']
