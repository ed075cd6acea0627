"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking on the last seats
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Tokens are minted locally, so SECRET_KEY must match the server's.
"""

import random
import uuid
from datetime import datetime, timedelta, timezone

import requests
from locust import HttpUser, task, between, tag, events

from yoga_booking.core.security import create_access_token

# Shared state
CLASS_IDS = []
CONCURRENCY_CLASS_ID = None
CONCURRENCY_SEATS = 10


def auth_headers(role: str = "student") -> dict:
    token = create_access_token(
        {"sub": f"{role}-{uuid.uuid4().hex[:12]}", "role": role},
        expires_delta=timedelta(hours=2),
    )
    return {"Authorization": f"Bearer {token}"}


def future_class(title: str, max_participants: int) -> dict:
    start = datetime.now(timezone.utc) + timedelta(days=random.randint(1, 60))
    return {
        "title": title,
        "description": "Load test class",
        "date": start.date().isoformat(),
        "time": "18:00:00",
        "duration": 60,
        "max_participants": max_participants,
        "price": "20.00",
    }


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: create a small class that every ConcurrencyUser races for."""
    global CONCURRENCY_CLASS_ID
    host = environment.host or "http://localhost:8000"

    resp = requests.post(
        f"{host}/api/v1/classes/",
        json=future_class("Concurrency Test Class", CONCURRENCY_SEATS),
        headers=auth_headers("teacher"),
        timeout=10,
    )
    if resp.status_code == 201:
        CONCURRENCY_CLASS_ID = resp.json()["id"]
        print(f"\nCreated class {CONCURRENCY_CLASS_ID} with {CONCURRENCY_SEATS} seats\n")
    else:
        print(f"\nCould not create concurrency class: {resp.status_code} {resp.text}\n")


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - many paid bookings race for 10 seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      GET /api/v1/classes/{id}/participants -> in_sync is true and
      actual_count <= 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = auth_headers("student")

    @tag("concurrency")
    @task
    def book_last_seats(self):
        """Each student books once; paid bookings take a seat immediately."""
        if not CONCURRENCY_CLASS_ID:
            return

        with self.client.post(
            "/api/v1/bookings/",
            json={"class_id": CONCURRENCY_CLASS_ID, "payment_status": "completed"},
            headers=self.headers,
            catch_response=True,
            name="/api/v1/bookings/ [race]",
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: CLASS_FULL or DUPLICATE_BOOKING
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_classes_cached(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/classes/?page={page}&page_size=20",
            name="/api/v1/classes/ [cached]")

    @tag("throughput", "read")
    @task(3)
    def get_class_detail(self):
        if CLASS_IDS:
            self.client.get(f"/api/v1/classes/{random.choice(CLASS_IDS)}",
                name="/api/v1/classes/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = auth_headers("student")

    @tag("edge")
    @task
    def unknown_class(self):
        with self.client.post("/api/v1/bookings/",
            json={"class_id": 999999},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 404:
                resp.success()
            else:
                resp.failure(f"Expected 404, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_initial_payment(self):
        with self.client.post("/api/v1/bookings/",
            json={"class_id": 1, "payment_status": "refunded"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 422:
                resp.success()
            else:
                resp.failure(f"Expected 422, got {resp.status_code}")

    @tag("edge")
    @task
    def book_for_someone_else(self):
        with self.client.post("/api/v1/bookings/",
            json={"class_id": 1, "student_id": "somebody-else"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 403:
                resp.success()
            else:
                resp.failure(f"Expected 403, got {resp.status_code}")

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code in [400, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post("/api/v1/bookings/",
            json={"class_id": 1},
            catch_response=True,
        ) as resp:
            if resp.status_code == 401:
                resp.success()
            else:
                resp.failure(f"Expected 401, got {resp.status_code}")


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some booking and paying, occasional cancelling.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = auth_headers("student")
        self.booking_ids = []

    @task(50)
    def browse_classes(self):
        resp = self.client.get("/api/v1/classes/?page=1&page_size=20")
        if resp.status_code == 200:
            for yoga_class in resp.json().get("classes", []):
                if yoga_class["id"] not in CLASS_IDS:
                    CLASS_IDS.append(yoga_class["id"])

    @task(20)
    def check_eligibility(self):
        if CLASS_IDS:
            self.client.get(f"/api/v1/classes/{random.choice(CLASS_IDS)}/eligibility",
                headers=self.headers, name="/api/v1/classes/{id}/eligibility")

    @task(10)
    def book_class(self):
        if not CLASS_IDS:
            return
        resp = self.client.post("/api/v1/bookings/",
            json={"class_id": random.choice(CLASS_IDS)},
            headers=self.headers)
        if resp.status_code == 201:
            self.booking_ids.append(resp.json()["id"])

    @task(5)
    def pay_booking(self):
        if self.booking_ids:
            self.client.post(f"/api/v1/bookings/{random.choice(self.booking_ids)}/payment",
                json={"payment_status": "completed"},
                headers=self.headers, name="/api/v1/bookings/{id}/payment")

    @task(2)
    def cancel_booking(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop(random.randrange(len(self.booking_ids)))
            self.client.delete(f"/api/v1/bookings/{booking_id}",
                headers=self.headers, name="/api/v1/bookings/{id}")
