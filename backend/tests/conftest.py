"""
Pytest fixtures for test database, client, services and authentication.

Each test gets a fresh in-memory SQLite database (aiosqlite) with the schema
created from the ORM metadata. Set TEST_DATABASE_URL to run against
PostgreSQL instead.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from roombook.main import app
from roombook.db.base import Base
from roombook.db.session import get_db
from roombook.core.security import create_access_token
from roombook.domain.policy import BookingPolicy
from roombook.models.room import Room
from roombook.models.reservation import Reservation
from roombook.services.reservation_service import ReservationService, build_reservation_service

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

USER_ID = 1
OTHER_USER_ID = 2
ADMIN_ID = 99


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def policy() -> BookingPolicy:
    """Reference policy: 30 min - 8 h bookings, 2 h cancellation lead time."""
    return BookingPolicy()


@pytest.fixture
def service(db_session: AsyncSession, policy: BookingPolicy) -> ReservationService:
    return build_reservation_service(db_session, policy)


@pytest.fixture
def day() -> datetime:
    """Midnight UTC two days from now; tests place slots relative to it."""
    now = datetime.now(timezone.utc)
    return (now + timedelta(days=2)).replace(hour=0, minute=0, second=0, microsecond=0)


@pytest.fixture
def at(day: datetime):
    """at(10) -> 10:00 on the test day, at(10, 30) -> 10:30."""

    def _at(hour: int, minute: int = 0) -> datetime:
        return day + timedelta(hours=hour, minutes=minute)

    return _at


async def _add_room(db: AsyncSession, **fields) -> Room:
    room = Room(**fields)
    db.add(room)
    await db.commit()
    await db.refresh(room)
    return room


@pytest_asyncio.fixture
async def room(db_session: AsyncSession) -> Room:
    """Active room with capacity 10."""
    return await _add_room(db_session, name="Board Room", capacity=10, is_active=True)


@pytest_asyncio.fixture
async def second_room(db_session: AsyncSession) -> Room:
    return await _add_room(db_session, name="Huddle Room", capacity=4, is_active=True)


@pytest_asyncio.fixture
async def inactive_room(db_session: AsyncSession) -> Room:
    return await _add_room(db_session, name="Closed Room", capacity=10, is_active=False)


@pytest.fixture
def make_reservation(db_session: AsyncSession, room: Room):
    """Insert a reservation row directly, bypassing admission (e.g. in the past)."""

    async def _make(start: datetime, end: datetime, status: str = "confirmed", user_id: int = USER_ID) -> Reservation:
        reservation = Reservation(
            room_id=room.id,
            user_id=user_id,
            start_time=start,
            end_time=end,
            attendees=2,
            purpose="Seeded reservation",
            status=status,
        )
        db_session.add(reservation)
        await db_session.flush()
        await db_session.refresh(reservation)
        return reservation

    return _make


def _headers(**claims) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data=claims)}"}


@pytest.fixture
def auth_headers() -> dict:
    return _headers(sub=str(USER_ID))


@pytest.fixture
def other_user_headers() -> dict:
    return _headers(sub=str(OTHER_USER_ID))


@pytest.fixture
def admin_headers() -> dict:
    return _headers(sub=str(ADMIN_ID), role="admin")
