from roombook.schemas.reservation import (
    AvailabilityRequest,
    AvailabilityResponse,
    ReservationCancelResponse,
    ReservationCreate,
    ReservationListResponse,
    ReservationResponse,
    ReservationStatsResponse,
    StatusUpdate,
    SweepResponse,
)

__all__ = [
    "AvailabilityRequest", "AvailabilityResponse",
    "ReservationCreate", "ReservationResponse", "ReservationListResponse",
    "ReservationCancelResponse", "ReservationStatsResponse",
    "StatusUpdate", "SweepResponse",
]
