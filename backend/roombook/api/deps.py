"""
Shared FastAPI dependencies.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roombook.db.session import get_db
from roombook.schemas.reservation import Pagination
from roombook.services.cache_service import invalidate_stats_cache
from roombook.services.reservation_service import ReservationService, build_reservation_service


async def get_reservation_service(db: AsyncSession = Depends(get_db)) -> ReservationService:
    return build_reservation_service(db)


async def commit_and_invalidate_stats(db: AsyncSession) -> None:
    """
    Commit the request's reservation write, then drop cached stats.
    Invalidating first would let a concurrent stats read re-cache pre-commit counts.
    """
    await db.commit()
    await invalidate_stats_cache()


def paginate(total: int, page: int, limit: int) -> Pagination:
    total_pages = -(-total // limit) if total else 0
    return Pagination(
        current=page,
        total=total_pages,
        limit=limit,
        total_records=total,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
