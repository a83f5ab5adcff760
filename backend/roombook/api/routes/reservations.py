"""
Reservation endpoints for authenticated users.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import AwareDatetime
from sqlalchemy.ext.asyncio import AsyncSession

from roombook.api.deps import commit_and_invalidate_stats, get_reservation_service, paginate
from roombook.core.logging import get_logger
from roombook.core.security import get_current_actor
from roombook.db.session import get_db
from roombook.domain.lifecycle import Actor, ReservationStatus
from roombook.schemas.reservation import (
    AvailabilityRequest,
    AvailabilityResponse,
    ReservationCancelResponse,
    ReservationCreate,
    ReservationListResponse,
    ReservationResponse,
    SortField,
    SortOrder,
)
from roombook.services.interfaces.repository import ReservationQuery
from roombook.services.reservation_service import ReservationService

logger = get_logger(__name__)
router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.post("/", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    data: ReservationCreate,
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a room for a time slot.

    Rejections carry a stable `code`: room_unavailable, capacity_exceeded,
    invalid_start, invalid_interval, duration_too_short, duration_too_long,
    slot_unavailable.
    """
    reservation = await service.create_reservation(
        user_id=actor.id,
        room_id=data.room_id,
        start=data.start_time,
        end=data.end_time,
        attendees=data.attendees,
        purpose=data.purpose,
        special_requirements=data.special_requirements,
    )
    await commit_and_invalidate_stats(db)
    return reservation


@router.get("/my-reservations", response_model=ReservationListResponse)
async def list_my_reservations(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    start_from: Optional[AwareDatetime] = Query(None, alias="from"),
    start_to: Optional[AwareDatetime] = Query(None, alias="to"),
    sort_by: SortField = Query("start_time"),
    sort_order: SortOrder = Query("asc"),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
):
    """List the caller's reservations with filtering, sorting and pagination."""
    reservations, total = await service.list_reservations(
        ReservationQuery(
            user_id=actor.id,
            status=status_filter,
            start_from=start_from,
            start_to=start_to,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
        )
    )
    return ReservationListResponse(
        reservations=[ReservationResponse.model_validate(r) for r in reservations],
        pagination=paginate(total, page, limit),
    )


@router.get("/upcoming", response_model=list[ReservationResponse])
async def list_upcoming(
    limit: int = Query(5, ge=1, le=50),
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
):
    """Next active reservations. Admins see every room, users only their own."""
    return await service.list_upcoming_reservations(actor, limit)


@router.post("/check-availability", response_model=AvailabilityResponse)
async def check_availability(
    data: AvailabilityRequest,
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Check whether a slot is free.
    Pass `exclude_reservation_id` to ignore a reservation being rescheduled.
    """
    available = await service.check_availability(
        data.room_id,
        data.start_time,
        data.end_time,
        exclude_reservation_id=data.exclude_reservation_id,
    )
    return AvailabilityResponse(
        available=available,
        room_id=data.room_id,
        start_time=data.start_time,
        end_time=data.end_time,
    )


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: int,
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
):
    """Get one reservation. Users can only see their own."""
    return await service.get_reservation(reservation_id, actor)


@router.patch("/{reservation_id}/cancel", response_model=ReservationCancelResponse)
async def cancel_reservation(
    reservation_id: int,
    actor: Actor = Depends(get_current_actor),
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """Cancel one of your reservations (confirmed, and before the lead-time window)."""
    reservation = await service.cancel_reservation(reservation_id, actor)
    await commit_and_invalidate_stats(db)
    return ReservationCancelResponse(
        message="Reservation cancelled successfully",
        reservation=ReservationResponse.model_validate(reservation),
    )
