"""
Booking endpoints: create, cancel and pay, with the participant count kept in
step inside the same transaction.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.db.session import get_db
from yoga_booking.models.enums import PaymentStatus
from yoga_booking.schemas.auth import Identity, Role
from yoga_booking.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingResponse,
    PaymentUpdate,
    PaymentUpdateResponse,
)
from yoga_booking.services.booking_service import (
    cancel_booking,
    complete_payment,
    create_booking,
    get_student_bookings,
)
from yoga_booking.services.cache_service import invalidate_class_cache
from yoga_booking.core.security import ensure_acting_for, get_current_identity, require_role
from yoga_booking.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    identity: Identity = Depends(require_role(Role.STUDENT)),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a class for the authenticated student.

    A booking created with payment_status=completed takes a seat immediately
    and fails with 409 CLASS_FULL when none is left. A pending booking takes
    its seat when the payment completes.
    """
    student_id = ensure_acting_for(identity, booking_data.student_id)
    booking = await create_booking(
        db,
        student_id,
        booking_data.class_id,
        status=booking_data.status,
        payment_status=booking_data.payment_status,
    )
    if booking.payment_status == PaymentStatus.COMPLETED:
        await invalidate_class_cache()
    return booking


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking; a paid booking is refunded and its seat released."""
    booking = await cancel_booking(db, booking_id, identity.user_id)
    await invalidate_class_cache()
    return BookingCancelResponse(
        success=True,
        booking_id=booking.id,
        status=booking.status,
        payment_status=booking.payment_status,
    )


@router.post("/{booking_id}/payment", response_model=PaymentUpdateResponse)
async def complete_payment_endpoint(
    booking_id: int,
    payment: PaymentUpdate,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Record the outcome reported by the payment flow for the caller's booking."""
    booking = await complete_payment(
        db,
        booking_id,
        payment.payment_status,
        student_id=identity.user_id,
    )
    await invalidate_class_cache()
    return PaymentUpdateResponse(
        success=True,
        booking_id=booking.id,
        payment_status=booking.payment_status,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_student_bookings(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Get all bookings of the authenticated student."""
    return await get_student_bookings(db, identity.user_id)
