"""
Service interfaces for dependency inversion.
Storage collaborators are reached only through these contracts.
"""

from .repository import ConcurrentBookingError, ReservationQuery, ReservationRepository
from .room_catalog import RoomCatalog

__all__ = ['ConcurrentBookingError', 'ReservationQuery', 'ReservationRepository', 'RoomCatalog']
