from roombook.models.room import Room
from roombook.models.reservation import Reservation

__all__ = ["Room", "Reservation"]
