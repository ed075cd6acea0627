"""
Audit log writes and reads for participant-count mutations.

Records are added to the caller's session so they commit or roll back together
with the count change they describe.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.core.config import get_settings
from yoga_booking.core.logging import get_logger
from yoga_booking.core.metrics import record_count_change
from yoga_booking.models.enums import AuditAction
from yoga_booking.models.participant_audit import ParticipantCountAudit

logger = get_logger(__name__)

DEFAULT_AUDIT_LIMIT = get_settings().AUDIT_PAGE_LIMIT


def record_count_change_audit(
    db: AsyncSession,
    *,
    class_id: int,
    action: AuditAction,
    old_count: int,
    new_count: int,
    reason: str,
    student_id: Optional[str] = None,
    booking_id: Optional[int] = None,
) -> ParticipantCountAudit:
    record = ParticipantCountAudit(
        class_id=class_id,
        student_id=student_id,
        booking_id=booking_id,
        action=action.value,
        old_count=old_count,
        new_count=new_count,
        reason=reason,
    )
    db.add(record)
    record_count_change(action.value)

    logger.info(
        "participant_count_changed",
        class_id=class_id,
        action=action.value,
        old_count=old_count,
        new_count=new_count,
        booking_id=booking_id,
        reason=reason,
    )
    return record


async def list_class_audit(
    db: AsyncSession,
    class_id: int,
    limit: int = DEFAULT_AUDIT_LIMIT,
) -> list[ParticipantCountAudit]:
    """Newest first."""
    result = await db.execute(
        select(ParticipantCountAudit)
        .where(ParticipantCountAudit.class_id == class_id)
        .order_by(ParticipantCountAudit.created_at.desc(), ParticipantCountAudit.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
