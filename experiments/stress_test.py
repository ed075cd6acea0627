#!/usr/bin/env python3
"""
Stress test for the Yoga Booking API.

Fires concurrent paid bookings at one small class, then asks the API whether
the stored participant count still matches the booking ledger.

Tokens are minted locally, so SECRET_KEY must match the server's.
"""

import asyncio
import time
import uuid
from datetime import datetime, timedelta, timezone

import aiohttp

from yoga_booking.core.security import create_access_token

API_URL = "http://localhost:8000"
CONCURRENT_STUDENTS = 50
SEATS_AVAILABLE = 10


def bearer(sub: str, role: str) -> dict:
    token = create_access_token({"sub": sub, "role": role}, expires_delta=timedelta(hours=1))
    return {"Authorization": f"Bearer {token}"}


class StressTest:
    def __init__(self):
        self.results = {
            "seated": 0,
            "class_full": 0,
            "other_conflicts": 0,
            "failed": 0,
            "errors": 0,
            "response_times": [],
        }
        self.class_id = None
        self.run_id = uuid.uuid4().hex[:8]

    async def create_test_class(self, session: aiohttp.ClientSession):
        start = datetime.now(timezone.utc) + timedelta(days=30)
        async with session.post(f"{API_URL}/api/v1/classes/",
            json={
                "title": f"Stress Test Class {self.run_id}",
                "description": "Testing concurrent bookings",
                "date": start.date().isoformat(),
                "time": "07:00:00",
                "max_participants": SEATS_AVAILABLE,
            },
            headers=bearer(f"stress-teacher-{self.run_id}", "teacher"),
        ) as resp:
            if resp.status == 201:
                data = await resp.json()
                self.class_id = data["id"]
                print(f"Created class {self.class_id} with {SEATS_AVAILABLE} seats")
            else:
                print(f"Class creation failed: {resp.status} {await resp.text()}")

    async def book_seat(self, session: aiohttp.ClientSession, student_num: int):
        headers = bearer(f"stress-{self.run_id}-{student_num}", "student")
        start = time.perf_counter()

        try:
            async with session.post(f"{API_URL}/api/v1/bookings/",
                json={"class_id": self.class_id, "payment_status": "completed"},
                headers=headers,
            ) as resp:
                elapsed = (time.perf_counter() - start) * 1000
                self.results["response_times"].append(elapsed)

                if resp.status == 201:
                    self.results["seated"] += 1
                elif resp.status == 409:
                    body = await resp.json()
                    key = "class_full" if body.get("error") == "CLASS_FULL" else "other_conflicts"
                    self.results[key] += 1
                else:
                    self.results["failed"] += 1
                    print(f"Student {student_num} failed: {resp.status} ({elapsed:.0f}ms)")
        except aiohttp.ClientError as e:
            self.results["errors"] += 1
            print(f"Student {student_num} error: {e}")

    async def participant_status(self, session: aiohttp.ClientSession) -> dict:
        async with session.get(f"{API_URL}/api/v1/classes/{self.class_id}/participants",
            headers=bearer(f"stress-teacher-{self.run_id}", "teacher"),
        ) as resp:
            return await resp.json()

    async def run(self):
        print(f"\n{'='*60}")
        print(f"STRESS TEST: {CONCURRENT_STUDENTS} students -> {SEATS_AVAILABLE} seats")
        print(f"{'='*60}\n")

        async with aiohttp.ClientSession() as session:
            await self.create_test_class(session)
            if not self.class_id:
                return

            print(f"\n{CONCURRENT_STUDENTS} students booking simultaneously...")
            start_time = time.perf_counter()
            await asyncio.gather(*(self.book_seat(session, i) for i in range(CONCURRENT_STUDENTS)))
            total_time = time.perf_counter() - start_time

            status = await self.participant_status(session)

        print("\n" + "="*60)
        print("RESULTS")
        print("="*60)
        print(f"Total time:        {total_time:.2f}s")
        print(f"Seated (201):      {self.results['seated']}")
        print(f"Class full (409):  {self.results['class_full']}")
        print(f"Other 409:         {self.results['other_conflicts']}")
        print(f"Failed:            {self.results['failed']}")
        print(f"Errors:            {self.results['errors']}")

        if self.results["response_times"]:
            times = sorted(self.results["response_times"])
            print("\nResponse times:")
            print(f"  Avg: {sum(times)/len(times):.0f}ms")
            print(f"  P50: {times[len(times)//2]:.0f}ms")
            print(f"  P95: {times[int(len(times)*0.95)]:.0f}ms")
            print(f"  P99: {times[int(len(times)*0.99)]:.0f}ms")

        print(f"\nParticipant status: {status}")
        print("="*60)
        overbooked = self.results["seated"] > SEATS_AVAILABLE
        if not overbooked and status.get("in_sync"):
            print(f"PASS: {self.results['seated']} seated <= {SEATS_AVAILABLE} seats, count in sync")
        else:
            print("FAIL: overbooking or count drift detected")
        print("="*60 + "\n")


if __name__ == "__main__":
    test = StressTest()
    asyncio.run(test.run())
