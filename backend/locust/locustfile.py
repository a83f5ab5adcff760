"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking
  locust -f locustfile.py --tags throughput   # Test read paths
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Tokens are minted locally with the API's SECRET_KEY, so run from the backend
directory with the same environment as the server. ROOM_ID selects the room
the concurrency scenario fights over (default 1).
"""

import os
import random
from datetime import datetime, timezone, timedelta

from locust import HttpUser, task, between, tag, events

from roombook.core.security import create_access_token

ROOM_ID = int(os.environ.get("ROOM_ID", "1"))
ROOM_IDS = [int(r) for r in os.environ.get("ROOM_IDS", str(ROOM_ID)).split(",")]

# Concurrency users request overlapping slots around this hour; at most one wins per overlap
CONTESTED_START = (datetime.now(timezone.utc) + timedelta(days=30)).replace(
    hour=10, minute=0, second=0, microsecond=0
)
CONTESTED_END = CONTESTED_START + timedelta(hours=1)


def auth_headers(role="user"):
    user_id = random.randint(10000, 99999)
    token = create_access_token(data={"sub": str(user_id), "role": role})
    return {"Authorization": f"Bearer {token}"}


def reservation_payload(room_id, start, hours=1, attendees=2):
    return {
        "room_id": room_id,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=hours)).isoformat(),
        "attendees": attendees,
        "purpose": "Load test booking",
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"Contested slot: room {ROOM_ID} {CONTESTED_START.isoformat()} -> {CONTESTED_END.isoformat()}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 1 slot

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM reservations
      WHERE room_id = X AND status IN ('pending', 'confirmed')
        AND start_time < :end AND end_time > :start;
    Should be <= 1
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = auth_headers()

    @tag("concurrency")
    @task
    def book_contested_slot(self):
        """All users fight for the same room and hour."""
        # Shift by up to 45 minutes so overlapping (not only identical) requests collide
        start = CONTESTED_START + timedelta(minutes=random.choice([0, 15, 30, 45]))
        with self.client.post(
            "/api/v1/reservations/",
            json=reservation_payload(ROOM_ID, start),
            headers=self.headers,
            name="/api/v1/reservations/ [contested]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: slot taken
            elif resp.status_code == 503 and resp.json().get("retryable"):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - availability and listing reads

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = auth_headers()

    @tag("throughput", "read")
    @task(10)
    def check_availability(self):
        start = datetime.now(timezone.utc) + timedelta(days=random.randint(1, 30), hours=random.randint(0, 12))
        self.client.post(
            "/api/v1/reservations/check-availability",
            json={
                "room_id": random.choice(ROOM_IDS),
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=1)).isoformat(),
            },
            headers=self.headers,
        )

    @tag("throughput", "read")
    @task(3)
    def my_reservations(self):
        self.client.get(
            f"/api/v1/reservations/my-reservations?page={random.randint(1, 3)}",
            headers=self.headers,
            name="/api/v1/reservations/my-reservations",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = auth_headers()

    def _expect(self, payload, expected, **kwargs):
        with self.client.post(
            "/api/v1/reservations/",
            json=payload,
            headers=kwargs.get("headers", self.headers),
            name=kwargs.get("name", "/api/v1/reservations/ [edge]"),
            catch_response=True,
        ) as resp:
            if resp.status_code in expected:
                resp.success()
            else:
                resp.failure(f"Expected {expected}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_room(self):
        start = datetime.now(timezone.utc) + timedelta(days=2)
        self._expect(reservation_payload(999999, start), [404])

    @tag("edge")
    @task
    def end_before_start(self):
        start = datetime.now(timezone.utc) + timedelta(days=2)
        self._expect(reservation_payload(ROOM_ID, start, hours=-1), [400])

    @tag("edge")
    @task
    def too_short(self):
        start = datetime.now(timezone.utc) + timedelta(days=2)
        self._expect(reservation_payload(ROOM_ID, start, hours=0.25), [400])

    @tag("edge")
    @task
    def huge_group(self):
        start = datetime.now(timezone.utc) + timedelta(days=2)
        self._expect(reservation_payload(ROOM_ID, start, attendees=999999), [400])

    @tag("edge")
    @task
    def naive_timestamps(self):
        start = datetime.now() + timedelta(days=2)
        self._expect(reservation_payload(ROOM_ID, start), [422])

    @tag("edge")
    @task
    def missing_auth(self):
        start = datetime.now(timezone.utc) + timedelta(days=2)
        self._expect(reservation_payload(ROOM_ID, start), [401], headers={})


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly availability checks, some bookings, occasional cancellations.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = auth_headers()
        self.mine = []

    def _random_slot(self):
        day = datetime.now(timezone.utc) + timedelta(days=random.randint(3, 60))
        return day.replace(hour=random.randint(7, 18), minute=random.choice([0, 30]), second=0, microsecond=0)

    @task(50)
    def check_availability(self):
        start = self._random_slot()
        self.client.post(
            "/api/v1/reservations/check-availability",
            json={
                "room_id": random.choice(ROOM_IDS),
                "start_time": start.isoformat(),
                "end_time": (start + timedelta(hours=1)).isoformat(),
            },
            headers=self.headers,
        )

    @task(20)
    def book(self):
        with self.client.post(
            "/api/v1/reservations/",
            json=reservation_payload(random.choice(ROOM_IDS), self._random_slot(), hours=random.choice([0.5, 1, 2])),
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                self.mine.append(resp.json()["id"])
                resp.success()
            elif resp.status_code in (400, 409):
                resp.success()

    @task(3)
    def cancel(self):
        if self.mine:
            reservation_id = self.mine.pop(random.randrange(len(self.mine)))
            self.client.patch(
                f"/api/v1/reservations/{reservation_id}/cancel",
                headers=self.headers,
                name="/api/v1/reservations/{id}/cancel",
            )
