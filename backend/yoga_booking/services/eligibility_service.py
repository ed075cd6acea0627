"""
Eligibility checker: can this student book this class right now?

Read-only and advisory. Clients use it to enable or disable the Book button;
the booking service repeats every check inside its own transaction because
state can change between this read and the write.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.models.booking import Booking
from yoga_booking.models.enums import BookingStatus
from yoga_booking.models.yoga_class import YogaClass
from yoga_booking.schemas.yoga_class import EligibilityResponse

REASON_ALREADY_BOOKED = "already booked"
REASON_CLASS_NOT_FOUND = "class not found"
REASON_PAST_CLASS = "cannot book past classes"
REASON_CLASS_FULL = "class is full"


async def find_confirmed_booking(
    db: AsyncSession,
    student_id: str,
    class_id: int,
) -> Optional[Booking]:
    result = await db.execute(
        select(Booking).where(
            Booking.student_id == student_id,
            Booking.class_id == class_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
    )
    return result.scalars().first()


async def can_book(
    db: AsyncSession,
    student_id: str,
    class_id: int,
    now: Optional[datetime] = None,
) -> EligibilityResponse:
    """Evaluate the booking rules in order; the first failing rule wins."""
    existing = await find_confirmed_booking(db, student_id, class_id)
    if existing:
        return EligibilityResponse(
            can_book=False,
            reason=REASON_ALREADY_BOOKED,
            booking_id=existing.id,
        )

    result = await db.execute(
        select(YogaClass)
        .where(YogaClass.id == class_id)
        .execution_options(populate_existing=True)
    )
    yoga_class = result.scalar_one_or_none()
    if not yoga_class:
        return EligibilityResponse(can_book=False, reason=REASON_CLASS_NOT_FOUND)

    counts = {
        "current_count": yoga_class.current_participants,
        "max_participants": yoga_class.max_participants,
    }
    if yoga_class.has_started(now):
        return EligibilityResponse(can_book=False, reason=REASON_PAST_CLASS, **counts)
    if yoga_class.is_full:
        return EligibilityResponse(can_book=False, reason=REASON_CLASS_FULL, **counts)
    return EligibilityResponse(can_book=True, **counts)
