"""
Pydantic schemas for reservation request/response validation.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import AwareDatetime, BaseModel, Field, computed_field

from roombook.domain.lifecycle import ACTIVE_STATUSES, ReservationStatus, effective_status


class ReservationCreate(BaseModel):
    room_id: int = Field(..., gt=0)
    start_time: AwareDatetime
    end_time: AwareDatetime
    attendees: int = Field(..., gt=0)
    purpose: str = Field(..., min_length=5, max_length=200)
    special_requirements: Optional[str] = Field(None, max_length=500)

    model_config = {"str_strip_whitespace": True}


class ReservationResponse(BaseModel):
    id: int
    room_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    attendees: int
    purpose: str
    special_requirements: Optional[str]
    status: ReservationStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def duration_hours(self) -> float:
        return round((self.end_time - self.start_time).total_seconds() / 3600, 2)

    @computed_field
    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @computed_field
    @property
    def is_past(self) -> bool:
        return datetime.now(timezone.utc) >= self.end_time

    @computed_field
    @property
    def effective_status(self) -> ReservationStatus:
        return effective_status(self.status, self.end_time, datetime.now(timezone.utc))


class Pagination(BaseModel):
    current: int
    total: int
    limit: int
    total_records: int
    has_next: bool
    has_prev: bool


class ReservationListResponse(BaseModel):
    reservations: list[ReservationResponse]
    pagination: Pagination


class ReservationCancelResponse(BaseModel):
    message: str
    reservation: ReservationResponse


class AvailabilityRequest(BaseModel):
    room_id: int = Field(..., gt=0)
    start_time: AwareDatetime
    end_time: AwareDatetime
    exclude_reservation_id: Optional[int] = Field(None, gt=0)


class AvailabilityResponse(BaseModel):
    available: bool
    room_id: int
    start_time: datetime
    end_time: datetime


class StatusUpdate(BaseModel):
    status: str


class ReservationStatsResponse(BaseModel):
    total_reservations: int
    pending_reservations: int
    confirmed_reservations: int
    cancelled_reservations: int
    completed_reservations: int
    active_reservations: int
    todays_reservations: int
    weekly_reservations: int
    cached: bool = False


class SweepResponse(BaseModel):
    completed: int


SortField = Literal["start_time", "created_at", "updated_at"]
SortOrder = Literal["asc", "desc"]
