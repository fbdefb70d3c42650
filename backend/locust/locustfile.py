"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test double booking
  locust -f locustfile.py --tags throughput   # Test calendar cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Tokens are minted locally with the API's SECRET_KEY, so run with the same
environment as the server.
"""

import random
from datetime import datetime, timedelta, timezone

from locust import HttpUser, between, events, tag, task

from villa_booking.core.security import Role, create_access_token

# One stay that every concurrency user fights for
RACE_START = (datetime.now(timezone.utc) + timedelta(days=60)).replace(
    hour=0, minute=0, second=0, microsecond=0
)


def auth_headers(role: Role = Role.GUEST) -> dict:
    user_id = f"load-{random.randint(100000, 999999)}"
    token = create_access_token(user_id, role=role, expires_delta=timedelta(hours=2))
    return {"Authorization": f"Bearer {token}"}


def stay(start: datetime, nights: int) -> dict:
    return {
        "check_in": start.isoformat(),
        "check_out": (start + timedelta(days=nights)).isoformat(),
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: racing for stays around {RACE_START.date().isoformat()}")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> one villa

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    Every request asks for a stay overlapping RACE_START. After the test, verify:
      SELECT COUNT(*) FROM bookings
      WHERE status NOT IN ('cancelled', 'expired')
        AND check_in < :race_end AND check_out > :race_start;
    Should be 1
    """

    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = auth_headers()

    @tag("concurrency")
    @task
    def book_overlapping_stay(self):
        start = RACE_START + timedelta(days=random.randint(-2, 2))
        with self.client.post(
            "/api/v1/bookings",
            json={**stay(start, 4), "guest_count": 2, "total_price": 1196},
            headers=self.headers,
            name="/api/v1/bookings [race]",
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: dates taken
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Calendar cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the server, run again

    Compare avg response time, requests/sec and P95/P99 latency.
    """

    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def calendar_cached(self):
        month = random.randint(0, 5)
        start = RACE_START + timedelta(days=30 * month)
        self.client.get(
            "/api/v1/availability/calendar",
            params={"start": start.isoformat(), "end": (start + timedelta(days=30)).isoformat()},
            name="/api/v1/availability/calendar [cached]",
        )

    @tag("throughput", "read")
    @task(3)
    def check_availability(self):
        start = RACE_START + timedelta(days=random.randint(0, 90))
        self.client.get(
            "/api/v1/availability",
            params=stay(start, random.randint(1, 7)),
            name="/api/v1/availability",
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

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def reversed_dates(self):
        start = RACE_START + timedelta(days=200)
        with self.client.post(
            "/api/v1/bookings",
            json={
                "check_in": (start + timedelta(days=3)).isoformat(),
                "check_out": start.isoformat(),
                "guest_count": 2,
                "total_price": 897,
            },
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def too_many_guests(self):
        with self.client.post(
            "/api/v1/bookings",
            json={**stay(RACE_START + timedelta(days=300), 2), "guest_count": 50, "total_price": 598},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400])

    @tag("edge")
    @task
    def unknown_booking(self):
        with self.client.get(
            "/api/v1/bookings/999999",
            headers=self.headers,
            name="/api/v1/bookings/{id} [missing]",
            catch_response=True,
        ) as resp:
            self._expect(resp, [404])

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, [400, 422])

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/bookings",
            json={**stay(RACE_START, 2), "guest_count": 2, "total_price": 598},
            catch_response=True,
        ) as resp:
            self._expect(resp, [401])


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly calendar browsing, some quotes, occasional bookings that are
    immediately cancelled so the calendar keeps churning.
    """

    wait_time = between(1, 3)

    def on_start(self):
        self.headers = auth_headers()

    @task(50)
    def browse_calendar(self):
        start = RACE_START + timedelta(days=random.randint(0, 120))
        self.client.get(
            "/api/v1/availability/calendar",
            params={"start": start.isoformat(), "end": (start + timedelta(days=30)).isoformat()},
            name="/api/v1/availability/calendar",
        )

    @task(20)
    def price_quote(self):
        start = RACE_START + timedelta(days=random.randint(0, 120))
        self.client.get(
            "/api/v1/availability/quote",
            params=stay(start, random.randint(1, 10)),
            name="/api/v1/availability/quote",
        )

    @task(5)
    def book_and_cancel(self):
        start = RACE_START + timedelta(days=random.randint(10, 365))
        resp = self.client.post(
            "/api/v1/bookings",
            json={**stay(start, 3), "guest_count": random.randint(1, 8), "total_price": 897},
            headers=self.headers,
            name="/api/v1/bookings",
        )
        if resp.status_code == 201:
            booking_id = resp.json()["id"]
            self.client.post(
                f"/api/v1/bookings/{booking_id}/cancel",
                json={"reason": "load test"},
                headers=self.headers,
                name="/api/v1/bookings/{id}/cancel",
            )
