"""
Tests for booking endpoints.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_pending_booking(client: AsyncClient, student_headers, future_class):
    """A pending booking is created but does not take a seat yet."""
    response = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id},
        headers=student_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["class_id"] == future_class.id
    assert data["student_id"] == "student-1"
    assert data["status"] == "confirmed"
    assert data["payment_status"] == "pending"

    class_response = await client.get(f"/api/v1/classes/{future_class.id}")
    assert class_response.json()["current_participants"] == 0


@pytest.mark.asyncio
async def test_create_paid_booking_takes_seat(client: AsyncClient, student_headers, future_class):
    response = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id, "payment_status": "completed"},
        headers=student_headers,
    )
    assert response.status_code == 201

    class_response = await client.get(f"/api/v1/classes/{future_class.id}")
    assert class_response.json()["current_participants"] == 1


@pytest.mark.asyncio
async def test_create_booking_unauthenticated(client: AsyncClient, future_class):
    response = await client.post("/api/v1/bookings/", json={"class_id": future_class.id})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_teacher_cannot_book(client: AsyncClient, teacher_headers, future_class):
    response = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id},
        headers=teacher_headers,
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_cannot_book_for_another_student(client: AsyncClient, student_headers, future_class):
    response = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id, "student_id": "student-2"},
        headers=student_headers,
    )
    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_initial_payment_must_be_pending_or_completed(client: AsyncClient, student_headers, future_class):
    response = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id, "payment_status": "refunded"},
        headers=student_headers,
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_paid_booking_on_full_class(client: AsyncClient, student_headers, full_class):
    response = await client.post(
        "/api/v1/bookings/",
        json={"class_id": full_class.id, "payment_status": "completed"},
        headers=student_headers,
    )
    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "CLASS_FULL"
    assert body["details"]["max_participants"] == 2


@pytest.mark.asyncio
async def test_duplicate_booking(client: AsyncClient, student_headers, future_class):
    first = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id},
        headers=student_headers,
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id},
        headers=student_headers,
    )
    assert second.status_code == 409
    assert second.json()["error"] == "DUPLICATE_BOOKING"
    assert second.json()["details"]["booking_id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_book_past_class(client: AsyncClient, student_headers, past_class):
    response = await client.post(
        "/api/v1/bookings/",
        json={"class_id": past_class.id},
        headers=student_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "PAST_CLASS"
    assert response.json()["detail"] == "Cannot book past classes"


@pytest.mark.asyncio
async def test_book_unknown_class(client: AsyncClient, student_headers):
    response = await client.post(
        "/api/v1/bookings/",
        json={"class_id": 999999},
        headers=student_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_cancel_paid_booking(client: AsyncClient, student_headers, future_class):
    created = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id, "payment_status": "completed"},
        headers=student_headers,
    )
    booking_id = created.json()["id"]

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=student_headers)
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "booking_id": booking_id,
        "status": "cancelled",
        "payment_status": "refunded",
    }

    class_response = await client.get(f"/api/v1/classes/{future_class.id}")
    assert class_response.json()["current_participants"] == 0

    again = await client.delete(f"/api/v1/bookings/{booking_id}", headers=student_headers)
    assert again.status_code == 400
    assert again.json()["error"] == "ALREADY_CANCELLED"


@pytest.mark.asyncio
async def test_cancel_someone_elses_booking(
    client: AsyncClient, student_headers, other_student_headers, future_class
):
    created = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id},
        headers=student_headers,
    )

    response = await client.delete(
        f"/api/v1/bookings/{created.json()['id']}", headers=other_student_headers
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_complete_payment(client: AsyncClient, student_headers, future_class):
    created = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id},
        headers=student_headers,
    )
    booking_id = created.json()["id"]

    response = await client.post(
        f"/api/v1/bookings/{booking_id}/payment",
        json={"payment_status": "completed"},
        headers=student_headers,
    )
    assert response.status_code == 200
    assert response.json() == {"success": True, "booking_id": booking_id, "payment_status": "completed"}

    class_response = await client.get(f"/api/v1/classes/{future_class.id}")
    assert class_response.json()["current_participants"] == 1


@pytest.mark.asyncio
async def test_invalid_payment_transition(client: AsyncClient, student_headers, future_class):
    created = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id},
        headers=student_headers,
    )

    response = await client.post(
        f"/api/v1/bookings/{created.json()['id']}/payment",
        json={"payment_status": "refunded"},
        headers=student_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_PAYMENT_TRANSITION"


@pytest.mark.asyncio
async def test_list_my_bookings(
    client: AsyncClient, student_headers, other_student_headers, class_factory
):
    first = await class_factory(title="Yin")
    second = await class_factory(title="Ashtanga")
    for yoga_class in (first, second):
        await client.post(
            "/api/v1/bookings/",
            json={"class_id": yoga_class.id},
            headers=student_headers,
        )
    await client.post(
        "/api/v1/bookings/",
        json={"class_id": first.id},
        headers=other_student_headers,
    )

    response = await client.get("/api/v1/bookings/", headers=student_headers)
    assert response.status_code == 200
    bookings = response.json()
    assert len(bookings) == 2
    assert {b["student_id"] for b in bookings} == {"student-1"}


@pytest.mark.asyncio
async def test_new_booking_cannot_start_cancelled(client: AsyncClient, student_headers, future_class):
    response = await client.post(
        "/api/v1/bookings/",
        json={"class_id": future_class.id, "status": "cancelled"},
        headers=student_headers,
    )
    assert response.status_code == 422
