"""
Count reconciler: recompute participant counts from the booking ledger and
repair drift.

The stored count is a cache; the number of countable bookings is the truth.
Unlike the booking service, the reconciler writes the count as an absolute
value, because the value is derived fresh from the ledger under the class row
lock in the same transaction.

SyncAll scans in keyset-paginated batches. One grouped COUNT per batch finds
the drifted classes, then each one is repaired in its own short transaction
that recounts under the lock. Nothing holds a lock across the whole scan, so
bookings keep flowing during a run; drift introduced mid-scan is picked up by
the next run.
"""

from dataclasses import asdict, dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.core.config import get_settings
from yoga_booking.core.exceptions import InconsistentState, NotFound
from yoga_booking.core.logging import get_logger
from yoga_booking.core.metrics import record_drift
from yoga_booking.db.session import transaction
from yoga_booking.models.booking import Booking
from yoga_booking.models.enums import AuditAction, BookingStatus, PaymentStatus
from yoga_booking.models.yoga_class import YogaClass
from yoga_booking.services.audit_service import record_count_change_audit
from yoga_booking.services.booking_service import lock_class

logger = get_logger(__name__)
settings = get_settings()

REASON_MANUAL_SYNC = "Manual synchronization"
REASON_AUTOMATED_SYNC = "Automated sync"


@dataclass
class CountCorrection:
    class_id: int
    old_count: int
    new_count: int
    fixed: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


def _countable(query):
    return query.where(
        Booking.status == BookingStatus.CONFIRMED.value,
        Booking.payment_status == PaymentStatus.COMPLETED.value,
    )


async def count_countable_bookings(db: AsyncSession, class_id: int) -> int:
    query = _countable(select(func.count(Booking.id)).where(Booking.class_id == class_id))
    return (await db.execute(query)).scalar_one()


async def _reconcile_locked(
    db: AsyncSession,
    class_id: int,
    reason: str,
    trigger: str,
) -> Optional[CountCorrection]:
    yoga_class = await lock_class(db, class_id)
    if not yoga_class:
        raise NotFound("Class", class_id)

    actual = await count_countable_bookings(db, class_id)
    stored = yoga_class.current_participants
    if actual == stored:
        return None

    drift = InconsistentState(class_id, stored, actual)
    logger.warning(
        "participant_count_drift",
        error=drift.error_code,
        trigger=trigger,
        **drift.details,
    )

    yoga_class.current_participants = actual
    record_count_change_audit(
        db,
        class_id=class_id,
        action=AuditAction.SYNC,
        old_count=stored,
        new_count=actual,
        reason=reason,
    )
    record_drift(trigger)
    return CountCorrection(class_id=class_id, old_count=stored, new_count=actual)


async def sync_participant_count(
    db: AsyncSession,
    class_id: int,
    reason: str = REASON_MANUAL_SYNC,
    trigger: str = "manual",
) -> bool:
    """
    Bring one class's count in line with its countable bookings.

    Returns True when the stored count was wrong and has been rewritten. A
    second call right after changes nothing and writes no audit record.
    """
    async with transaction(db):
        correction = await _reconcile_locked(db, class_id, reason, trigger)
    return correction is not None


async def _scan_batch(
    db: AsyncSession,
    after_id: int,
    batch_size: int,
) -> list[tuple[int, int, int]]:
    """(class_id, stored, actual) for the next batch of classes by id."""
    async with transaction(db):
        rows = (
            await db.execute(
                select(YogaClass.id, YogaClass.current_participants)
                .where(YogaClass.id > after_id)
                .order_by(YogaClass.id)
                .limit(batch_size)
            )
        ).all()
        if not rows:
            return []

        class_ids = [row.id for row in rows]
        counts = dict(
            (
                await db.execute(
                    _countable(
                        select(Booking.class_id, func.count(Booking.id)).where(
                            Booking.class_id.in_(class_ids)
                        )
                    ).group_by(Booking.class_id)
                )
            ).all()
        )
    return [(row.id, row.current_participants, counts.get(row.id, 0)) for row in rows]


async def sync_all_participant_counts(
    db: AsyncSession,
    reason: str = REASON_MANUAL_SYNC,
    trigger: str = "manual",
    batch_size: Optional[int] = None,
) -> list[CountCorrection]:
    """
    Reconcile every class. Returns one correction per class that was actually
    changed; classes already in sync are not reported.
    """
    batch_size = batch_size or settings.SYNC_BATCH_SIZE
    corrections: list[CountCorrection] = []
    scanned = 0
    last_id = 0

    while True:
        batch = await _scan_batch(db, last_id, batch_size)
        if not batch:
            break
        scanned += len(batch)
        last_id = batch[-1][0]

        for class_id, stored, actual in batch:
            if stored == actual:
                continue
            try:
                async with transaction(db):
                    correction = await _reconcile_locked(db, class_id, reason, trigger)
            except NotFound:
                # deleted after the scan read it
                continue
            if correction:
                corrections.append(correction)

    logger.info(
        "participant_counts_reconciled",
        trigger=trigger,
        classes_scanned=scanned,
        classes_fixed=len(corrections),
    )
    return corrections
