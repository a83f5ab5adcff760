"""
Tests for admin endpoints: listing, stats, status overrides and the sweep.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

BASE = "/api/v1/admin"


async def book(client, headers, room, start, end, attendees=4):
    response = await client.post(
        "/api/v1/reservations/",
        json={
            "room_id": room.id,
            "start_time": start.isoformat(),
            "end_time": end.isoformat(),
            "attendees": attendees,
            "purpose": "Design review",
        },
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/reservations"),
        ("get", "/reservations/stats"),
        ("get", "/rooms/1/reservations"),
        ("patch", "/reservations/1/cancel"),
        ("post", "/reservations/complete-elapsed"),
    ],
)
async def test_admin_routes_reject_users(client: AsyncClient, auth_headers, method, path):
    response = await getattr(client, method)(f"{BASE}{path}", headers=auth_headers)
    assert response.status_code == 403
    assert response.json()["code"] == "admin_required"


@pytest.mark.asyncio
async def test_admin_routes_require_token(client: AsyncClient):
    response = await client.get(f"{BASE}/reservations")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_all_reservations(client: AsyncClient, auth_headers, other_user_headers, admin_headers, room, at):
    await book(client, auth_headers, room, at(10), at(11))
    await book(client, other_user_headers, room, at(12), at(13))

    response = await client.get(f"{BASE}/reservations", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["pagination"]["total_records"] == 2
    assert {r["user_id"] for r in data["reservations"]} == {1, 2}


@pytest.mark.asyncio
async def test_room_schedule(client: AsyncClient, auth_headers, admin_headers, room, second_room, at):
    await book(client, auth_headers, room, at(12), at(13))
    await book(client, auth_headers, room, at(9), at(10))
    await book(client, auth_headers, second_room, at(9), at(10), attendees=2)

    response = await client.get(f"{BASE}/rooms/{room.id}/reservations", headers=admin_headers)
    assert response.status_code == 200
    starts = [r["start_time"] for r in response.json()["reservations"]]
    assert len(starts) == 2
    assert starts == sorted(starts)


@pytest.mark.asyncio
async def test_admin_listing_time_window(client: AsyncClient, auth_headers, admin_headers, room, at):
    await book(client, auth_headers, room, at(9), at(10))
    later = await book(client, auth_headers, room, at(12), at(13))

    for path in ("/reservations", f"/rooms/{room.id}/reservations"):
        response = await client.get(f"{BASE}{path}", params={"from": at(11).isoformat()}, headers=admin_headers)
        assert response.status_code == 200
        assert [r["id"] for r in response.json()["reservations"]] == [later["id"]]


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/reservations", "/rooms/{room_id}/reservations"])
@pytest.mark.parametrize("bound", ["from", "to"])
async def test_admin_listing_rejects_naive_bounds(client: AsyncClient, admin_headers, room, at, path, bound):
    response = await client.get(
        f"{BASE}{path.format(room_id=room.id)}",
        params={bound: at(11).replace(tzinfo=None).isoformat()},
        headers=admin_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_admin_writes_drop_stats_after_commit(client: AsyncClient, auth_headers, admin_headers, make_reservation, room, at, db_session, monkeypatch):
    open_transaction_at_invalidation = []

    async def record_invalidation():
        open_transaction_at_invalidation.append(db_session.in_transaction())

    reservation = await book(client, auth_headers, room, at(10), at(11))
    now = datetime.now(timezone.utc)
    await make_reservation(now - timedelta(hours=3), now - timedelta(hours=2))
    monkeypatch.setattr("roombook.api.deps.invalidate_stats_cache", record_invalidation)

    status = await client.patch(
        f"{BASE}/reservations/{reservation['id']}/status", json={"status": "pending"}, headers=admin_headers
    )
    assert status.status_code == 200
    cancel = await client.patch(f"{BASE}/reservations/{reservation['id']}/cancel", headers=admin_headers)
    assert cancel.status_code == 200
    sweep = await client.post(f"{BASE}/reservations/complete-elapsed", headers=admin_headers)
    assert sweep.json() == {"completed": 1}

    assert open_transaction_at_invalidation == [False, False, False]


@pytest.mark.asyncio
async def test_admin_cancel_inside_lead_time(client: AsyncClient, auth_headers, admin_headers, room):
    start = datetime.now(timezone.utc) + timedelta(hours=1)
    reservation = await book(client, auth_headers, room, start, start + timedelta(hours=1))

    response = await client.patch(f"{BASE}/reservations/{reservation['id']}/cancel", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Reservation cancelled by admin"
    assert response.json()["reservation"]["status"] == "cancelled"

    again = await client.patch(f"{BASE}/reservations/{reservation['id']}/cancel", headers=admin_headers)
    assert again.status_code == 400
    assert again.json()["code"] == "reservation_terminal"


@pytest.mark.asyncio
async def test_status_override(client: AsyncClient, auth_headers, admin_headers, room, at):
    reservation = await book(client, auth_headers, room, at(10), at(11))

    response = await client.patch(
        f"{BASE}/reservations/{reservation['id']}/status",
        json={"status": "pending"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "pending"


@pytest.mark.asyncio
async def test_status_override_invalid_status(client: AsyncClient, auth_headers, admin_headers, room, at):
    reservation = await book(client, auth_headers, room, at(10), at(11))

    response = await client.patch(
        f"{BASE}/reservations/{reservation['id']}/status",
        json={"status": "archived"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_status"


@pytest.mark.asyncio
async def test_status_override_by_user_forbidden(client: AsyncClient, auth_headers, room, at):
    reservation = await book(client, auth_headers, room, at(10), at(11))

    response = await client.patch(
        f"{BASE}/reservations/{reservation['id']}/status",
        json={"status": "confirmed"},
        headers=auth_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_reactivation_conflict(client: AsyncClient, auth_headers, other_user_headers, admin_headers, room, at):
    first = await book(client, auth_headers, room, at(10), at(12))
    await client.patch(f"{BASE}/reservations/{first['id']}/cancel", headers=admin_headers)
    await book(client, other_user_headers, room, at(11), at(12))

    response = await client.patch(
        f"{BASE}/reservations/{first['id']}/status",
        json={"status": "confirmed"},
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["code"] == "slot_unavailable"


@pytest.mark.asyncio
async def test_reservation_stats(client: AsyncClient, auth_headers, admin_headers, room, at):
    first = await book(client, auth_headers, room, at(10), at(11))
    await book(client, auth_headers, room, at(12), at(13))
    await client.patch(f"/api/v1/reservations/{first['id']}/cancel", headers=auth_headers)

    response = await client.get(f"{BASE}/reservations/stats", headers=admin_headers)
    assert response.status_code == 200
    stats = response.json()
    assert stats["total_reservations"] == 2
    assert stats["confirmed_reservations"] == 1
    assert stats["cancelled_reservations"] == 1
    assert stats["pending_reservations"] == 0
    assert stats["active_reservations"] == 1
    assert stats["cached"] is False


@pytest.mark.asyncio
async def test_complete_elapsed_sweep(client: AsyncClient, admin_headers, make_reservation):
    now = datetime.now(timezone.utc)
    past = await make_reservation(now - timedelta(hours=4), now - timedelta(hours=3))
    await make_reservation(now + timedelta(hours=4), now + timedelta(hours=5))

    response = await client.post(f"{BASE}/reservations/complete-elapsed", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"completed": 1}

    again = await client.post(f"{BASE}/reservations/complete-elapsed", headers=admin_headers)
    assert again.json() == {"completed": 0}

    listing = await client.get(f"{BASE}/reservations", params={"status": "completed"}, headers=admin_headers)
    assert [r["id"] for r in listing.json()["reservations"]] == [past.id]


@pytest.mark.asyncio
async def test_elapsed_reservation_reads_completed(client: AsyncClient, admin_headers, make_reservation):
    """Before the sweep runs, an elapsed confirmed reservation reads as completed."""
    now = datetime.now(timezone.utc)
    past = await make_reservation(now - timedelta(hours=2), now - timedelta(hours=1))

    response = await client.get(f"/api/v1/reservations/{past.id}", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "confirmed"
    assert data["effective_status"] == "completed"
    assert data["is_past"] is True
