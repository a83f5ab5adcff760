"""
Reservation model: a user's hold on a room for a half-open time range.

Key design decisions:
- Reservations are never deleted; cancellation and completion are status changes
- Compound index on (room_id, start_time, end_time, status) serves the
  conflict lookup, which is the hot read path
- On PostgreSQL an exclusion constraint over (room_id, tstzrange) restricted to
  active statuses is the last line of defence against double booking
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DDL,
    ForeignKey,
    Index,
    Integer,
    String,
    event,
)

from roombook.db.base import Base, TimestampMixin, UTCDateTime

OVERLAP_CONSTRAINT_NAME = "excl_reservations_room_active_overlap"


class Reservation(Base, TimestampMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    start_time = Column(UTCDateTime(), nullable=False)
    end_time = Column(UTCDateTime(), nullable=False)
    attendees = Column(Integer, nullable=False)
    purpose = Column(String(200), nullable=False)
    special_requirements = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default="confirmed")  # pending, confirmed, cancelled, completed

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_reservation_interval"),
        CheckConstraint("attendees > 0", name="check_reservation_attendees_positive"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="check_reservation_status",
        ),
        Index("ix_reservations_availability", "room_id", "start_time", "end_time", "status"),
        Index("ix_reservations_user_start", "user_id", "start_time"),
        Index("ix_reservations_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, room={self.room_id}, user={self.user_id}, "
            f"start={self.start_time}, end={self.end_time}, status={self.status})>"
        )


event.listen(
    Reservation.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Reservation.__table__,
    "after_create",
    DDL(
        f"ALTER TABLE reservations ADD CONSTRAINT {OVERLAP_CONSTRAINT_NAME} "
        "EXCLUDE USING gist (room_id WITH =, tstzrange(start_time, end_time, '[)') WITH &&) "
        "WHERE (status IN ('pending', 'confirmed'))"
    ).execute_if(dialect="postgresql"),
)
