"""
Booking orchestrator: create, cancel and pay for bookings while keeping the
class's cached participant count correct.

CONCURRENCY STRATEGY: Row Lock + Guarded Delta Update
=====================================================

Problem:
  Two students try to pay for the last seat simultaneously.
  Both read current_participants=9 of 10, both insert, both increment.
  Result: 11 participants in a 10-person class.

Solution:
  Every operation is one transaction (see db.session.transaction):

  1. Lock the class row: SELECT ... FROM yoga_classes WHERE id = :id FOR UPDATE
     The second booking waits here until the first commits, then sees 10/10.
  2. Re-check every precondition under the lock (exists, in the future,
     capacity, duplicate). Nothing the client checked earlier is trusted.
  3. Insert/update the booking row.
  4. Apply the count change as a delta, never as "set to X":
       UPDATE yoga_classes SET current_participants = current_participants + 1
       WHERE id = :id AND current_participants < max_participants
     rowcount == 0 means capacity was exhausted -> ClassFull, rollback.
  5. Append exactly one audit record per count change.

  Any failure rolls back all of it: no orphan booking, no stray increment.
  The rollback also expires every object loaded through the session, so a
  booking returned by an earlier call on the same session must not be read
  after a later call on that session has failed.

Counting rule:
  A booking occupies a seat iff status = confirmed AND payment = completed.
  Every path derives was-countable / is-countable from the before/after state
  and applies only the difference (-1, 0, +1), so repeated calls never
  double count.

Lock order is always booking row before class row; creation locks only the
class. No path locks a class and then an existing booking, so these
transactions cannot deadlock each other.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.core.exceptions import (
    AlreadyCancelled,
    BookingError,
    ClassFull,
    DuplicateBooking,
    InvalidPaymentTransition,
    NotFound,
    PastClass,
)
from yoga_booking.core.logging import get_logger
from yoga_booking.core.metrics import booking_latency, record_booking_operation
from yoga_booking.db.session import transaction
from yoga_booking.models.booking import Booking, is_countable
from yoga_booking.models.enums import AuditAction, BookingStatus, PaymentStatus
from yoga_booking.models.yoga_class import YogaClass
from yoga_booking.services.audit_service import record_count_change_audit
from yoga_booking.services.eligibility_service import find_confirmed_booking

logger = get_logger(__name__)

REASON_BOOKING_CREATED = "Booking created"
REASON_BOOKING_CANCELLED = "Booking cancelled"
REASON_PAYMENT_COMPLETED = "Payment completed"
REASON_PAYMENT_REVERSED = "Payment failed"

PAYMENT_TARGETS = (PaymentStatus.COMPLETED, PaymentStatus.FAILED)
CONFIRMED_BOOKING_INDEX = "uq_bookings_student_class_confirmed"


@asynccontextmanager
async def _observe(operation: str):
    """Record latency and outcome of one orchestrator operation."""
    start = time.perf_counter()
    try:
        yield
    except BookingError as e:
        record_booking_operation(operation, e.error_code)
        raise
    except Exception:
        record_booking_operation(operation, "error")
        raise
    else:
        record_booking_operation(operation, "success")
    finally:
        booking_latency.labels(operation=operation).observe(time.perf_counter() - start)


async def lock_class(db: AsyncSession, class_id: int) -> Optional[YogaClass]:
    """Fetch the class row FOR UPDATE, refreshing any stale copy in the session."""
    result = await db.execute(
        select(YogaClass)
        .where(YogaClass.id == class_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _lock_booking(db: AsyncSession, booking_id: int) -> Optional[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _log_floor_reached(class_id: int, booking_id: int, reason: str) -> None:
    logger.warning(
        "participant_count_floor_reached",
        class_id=class_id,
        booking_id=booking_id,
        reason=reason,
    )


async def _apply_count_delta(
    db: AsyncSession,
    yoga_class: YogaClass,
    delta: int,
    *,
    booking: Booking,
    reason: str,
    enforce_capacity: bool = False,
) -> None:
    """
    Shift current_participants by +1 or -1 on a locked class and audit it.

    Increments can be guarded by capacity (booking creation only). Decrements
    floor at zero: if the count is already 0 the ledger had drifted, nothing
    is written and the reconciler will repair it.
    """
    old_count = yoga_class.current_participants

    if delta < 0 and old_count <= 0:
        _log_floor_reached(yoga_class.id, booking.id, reason)
        return

    stmt = (
        update(YogaClass)
        .where(YogaClass.id == yoga_class.id)
        .values(current_participants=YogaClass.current_participants + delta)
    )
    if enforce_capacity:
        stmt = stmt.where(YogaClass.current_participants < YogaClass.max_participants)
    if delta < 0:
        stmt = stmt.where(YogaClass.current_participants > 0)

    result = await db.execute(stmt)
    if result.rowcount == 0:
        if delta > 0:
            raise ClassFull(yoga_class.id, old_count, yoga_class.max_participants)
        # the stored count was already 0 when the guarded UPDATE ran
        _log_floor_reached(yoga_class.id, booking.id, reason)
        return

    record_count_change_audit(
        db,
        class_id=yoga_class.id,
        action=AuditAction.INCREMENT if delta > 0 else AuditAction.DECREMENT,
        old_count=old_count,
        new_count=old_count + delta,
        reason=reason,
        student_id=booking.student_id,
        booking_id=booking.id,
    )


def _is_duplicate_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return CONFIRMED_BOOKING_INDEX in message or "UNIQUE constraint failed: bookings" in message


async def create_booking(
    db: AsyncSession,
    student_id: str,
    class_id: int,
    status: BookingStatus = BookingStatus.CONFIRMED,
    payment_status: PaymentStatus = PaymentStatus.PENDING,
    now: Optional[datetime] = None,
) -> Booking:
    """
    Create a booking, counting it toward the class immediately when it is
    confirmed and already paid.

    Raises NotFound, PastClass, ClassFull or DuplicateBooking, checked in that
    order; nothing is written when any of them fails.
    """
    status = BookingStatus(status)
    payment_status = PaymentStatus(payment_status)
    countable = is_countable(status.value, payment_status.value)

    async with _observe("create"):
        try:
            async with transaction(db):
                yoga_class = await lock_class(db, class_id)
                if not yoga_class:
                    raise NotFound("Class", class_id)

                if yoga_class.has_started(now):
                    raise PastClass(class_id=class_id, starts_at=yoga_class.starts_at.isoformat())

                if countable and yoga_class.is_full:
                    logger.warning(
                        "booking_rejected_class_full",
                        class_id=class_id,
                        student_id=student_id,
                        current=yoga_class.current_participants,
                        capacity=yoga_class.max_participants,
                    )
                    raise ClassFull(class_id, yoga_class.current_participants, yoga_class.max_participants)

                existing = await find_confirmed_booking(db, student_id, class_id)
                if existing:
                    raise DuplicateBooking(class_id, existing.id)

                booking = Booking(
                    student_id=student_id,
                    class_id=class_id,
                    status=status.value,
                    payment_status=payment_status.value,
                )
                db.add(booking)
                await db.flush()

                if countable:
                    await _apply_count_delta(
                        db,
                        yoga_class,
                        +1,
                        booking=booking,
                        reason=REASON_BOOKING_CREATED,
                        enforce_capacity=True,
                    )
                await db.refresh(booking)
        except IntegrityError as e:
            if _is_duplicate_violation(e):
                raise DuplicateBooking(class_id) from e
            raise

    logger.info(
        "booking_created",
        booking_id=booking.id,
        student_id=student_id,
        class_id=class_id,
        status=booking.status,
        payment_status=booking.payment_status,
        counted=countable,
    )
    return booking


async def cancel_booking(
    db: AsyncSession,
    booking_id: int,
    student_id: str,
) -> Booking:
    """
    Cancel a student's booking, refunding it and releasing its seat if it held
    one. Bookings of other students are reported as not found.
    """
    async with _observe("cancel"):
        async with transaction(db):
            booking = await _lock_booking(db, booking_id)
            if not booking or booking.student_id != student_id:
                raise NotFound("Booking", booking_id)

            if booking.status == BookingStatus.CANCELLED.value:
                raise AlreadyCancelled(booking_id)

            was_countable = booking.countable
            booking.status = BookingStatus.CANCELLED.value
            booking.payment_status = PaymentStatus.REFUNDED.value
            await db.flush()

            if was_countable:
                yoga_class = await lock_class(db, booking.class_id)
                await _apply_count_delta(
                    db,
                    yoga_class,
                    -1,
                    booking=booking,
                    reason=REASON_BOOKING_CANCELLED,
                )
            await db.refresh(booking)

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        student_id=student_id,
        class_id=booking.class_id,
        seat_released=was_countable,
    )
    return booking


async def complete_payment(
    db: AsyncSession,
    booking_id: int,
    payment_status: PaymentStatus,
    student_id: Optional[str] = None,
) -> Booking:
    """
    Record a payment outcome for a booking and move the class count by the
    resulting change in countability.

    Capacity is not re-checked: the seat was offered when the booking was
    created, and the reconciler tolerates a transient overshoot.
    """
    target = PaymentStatus(payment_status)

    async with _observe("payment"):
        async with transaction(db):
            booking = await _lock_booking(db, booking_id)
            if not booking or (student_id is not None and booking.student_id != student_id):
                raise NotFound("Booking", booking_id)

            if booking.status == BookingStatus.CANCELLED.value:
                raise AlreadyCancelled(booking_id)

            previous = booking.payment_status
            if target not in PAYMENT_TARGETS:
                raise InvalidPaymentTransition(previous, target.value)

            was_countable = booking.countable
            booking.payment_status = target.value
            delta = int(booking.countable) - int(was_countable)
            await db.flush()

            if delta:
                yoga_class = await lock_class(db, booking.class_id)
                await _apply_count_delta(
                    db,
                    yoga_class,
                    delta,
                    booking=booking,
                    reason=REASON_PAYMENT_COMPLETED if delta > 0 else REASON_PAYMENT_REVERSED,
                )
            await db.refresh(booking)

    logger.info(
        "booking_payment_updated",
        booking_id=booking.id,
        class_id=booking.class_id,
        previous=previous,
        payment_status=booking.payment_status,
        count_delta=delta,
    )
    return booking


async def get_student_bookings(db: AsyncSession, student_id: str) -> list[Booking]:
    """All bookings for a student, newest first."""
    result = await db.execute(
        select(Booking)
        .where(Booking.student_id == student_id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
    )
    return list(result.scalars().all())
