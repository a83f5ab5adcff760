"""
Room model, owned by the room catalog.

Key design decisions:
- `booking_version` is bumped in the same transaction as every write that
  makes a reservation on this room active. Concurrent bookings for one room
  serialize on that conditional UPDATE (see reservation_repository).
- Capacity is checked by the admission policy at creation time only.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, String

from roombook.db.base import Base, TimestampMixin


class Room(Base, TimestampMixin):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Optimistic locking version counter for bookings on this room
    booking_version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_room_capacity_positive"),
    )

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, name={self.name}, capacity={self.capacity}, active={self.is_active})>"
