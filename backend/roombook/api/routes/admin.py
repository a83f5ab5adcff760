"""
Administrative reservation endpoints. Every route requires the admin role.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import AwareDatetime
from sqlalchemy.ext.asyncio import AsyncSession

from roombook.api.deps import commit_and_invalidate_stats, get_reservation_service, paginate
from roombook.core.logging import get_logger
from roombook.core.security import require_admin
from roombook.db.session import get_db
from roombook.domain.lifecycle import Actor, ReservationStatus
from roombook.schemas.reservation import (
    ReservationCancelResponse,
    ReservationListResponse,
    ReservationResponse,
    ReservationStatsResponse,
    SortField,
    SortOrder,
    StatusUpdate,
    SweepResponse,
)
from roombook.services.cache_service import get_cached_stats, set_cached_stats
from roombook.services.interfaces.repository import ReservationQuery
from roombook.services.reservation_service import ReservationService

logger = get_logger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/reservations", response_model=ReservationListResponse)
async def list_all_reservations(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    start_from: Optional[AwareDatetime] = Query(None, alias="from"),
    start_to: Optional[AwareDatetime] = Query(None, alias="to"),
    sort_by: SortField = Query("start_time"),
    sort_order: SortOrder = Query("asc"),
    admin: Actor = Depends(require_admin),
    service: ReservationService = Depends(get_reservation_service),
):
    reservations, total = await service.list_reservations(
        ReservationQuery(
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


@router.get("/reservations/stats", response_model=ReservationStatsResponse)
async def reservation_stats(
    admin: Actor = Depends(require_admin),
    service: ReservationService = Depends(get_reservation_service),
):
    """
    Reservation counts by status plus today's and this week's bookings.
    Cached in Redis until the next reservation write.
    """
    today = datetime.now(timezone.utc).date()
    cached = await get_cached_stats(today)
    if cached:
        cached["cached"] = True
        return ReservationStatsResponse(**cached)

    stats = await service.get_reservation_stats()
    await set_cached_stats(today, stats)
    return ReservationStatsResponse(**stats)


@router.get("/rooms/{room_id}/reservations", response_model=ReservationListResponse)
async def list_room_reservations(
    room_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    start_from: Optional[AwareDatetime] = Query(None, alias="from"),
    start_to: Optional[AwareDatetime] = Query(None, alias="to"),
    admin: Actor = Depends(require_admin),
    service: ReservationService = Depends(get_reservation_service),
):
    """All reservations on one room, ordered by start time."""
    reservations, total = await service.list_reservations(
        ReservationQuery(
            room_id=room_id,
            status=status_filter,
            start_from=start_from,
            start_to=start_to,
            page=page,
            limit=limit,
        )
    )
    return ReservationListResponse(
        reservations=[ReservationResponse.model_validate(r) for r in reservations],
        pagination=paginate(total, page, limit),
    )


@router.patch("/reservations/{reservation_id}/status", response_model=ReservationResponse)
async def update_reservation_status(
    reservation_id: int,
    data: StatusUpdate,
    admin: Actor = Depends(require_admin),
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """
    Override a reservation's status.
    Reactivating a cancelled/completed reservation re-checks the slot.
    """
    reservation = await service.update_reservation_status(reservation_id, data.status, admin)
    await commit_and_invalidate_stats(db)
    return reservation


@router.patch("/reservations/{reservation_id}/cancel", response_model=ReservationCancelResponse)
async def admin_cancel_reservation(
    reservation_id: int,
    admin: Actor = Depends(require_admin),
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """Cancel any active reservation regardless of the lead-time window."""
    reservation = await service.cancel_reservation(reservation_id, admin)
    await commit_and_invalidate_stats(db)
    return ReservationCancelResponse(
        message="Reservation cancelled by admin",
        reservation=ReservationResponse.model_validate(reservation),
    )


@router.post("/reservations/complete-elapsed", response_model=SweepResponse)
async def complete_elapsed_reservations(
    admin: Actor = Depends(require_admin),
    service: ReservationService = Depends(get_reservation_service),
    db: AsyncSession = Depends(get_db),
):
    """Persist confirmed -> completed for reservations whose end has passed."""
    completed = await service.complete_elapsed_reservations()
    if completed:
        await commit_and_invalidate_stats(db)
    return SweepResponse(completed=completed)
