"""
Read-only participant views for teachers and operators.
"""

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.core.exceptions import Forbidden
from yoga_booking.models.participant_audit import ParticipantCountAudit
from yoga_booking.models.yoga_class import YogaClass
from yoga_booking.schemas.auth import Identity, Role
from yoga_booking.schemas.yoga_class import ParticipantStatus, TeacherParticipantStats
from yoga_booking.services.audit_service import DEFAULT_AUDIT_LIMIT, list_class_audit
from yoga_booking.services.class_service import get_class
from yoga_booking.services.reconciliation_service import count_countable_bookings


async def get_class_audit(
    db: AsyncSession,
    class_id: int,
    identity: Identity,
    limit: int = DEFAULT_AUDIT_LIMIT,
) -> list[ParticipantCountAudit]:
    """Audit trail of a class, visible to its teacher and to admins."""
    yoga_class = await get_class(db, class_id)
    if identity.role != Role.ADMIN and yoga_class.teacher_id != identity.user_id:
        raise Forbidden("Only the class teacher can view its participant audit")
    return await list_class_audit(db, class_id, limit)


async def get_participant_status(db: AsyncSession, class_id: int) -> ParticipantStatus:
    """Cached count next to the real-time count from the booking ledger."""
    yoga_class = await get_class(db, class_id)
    actual = await count_countable_bookings(db, class_id)
    return ParticipantStatus(
        class_id=class_id,
        stored_count=yoga_class.current_participants,
        actual_count=actual,
        max_participants=yoga_class.max_participants,
        in_sync=actual == yoga_class.current_participants,
    )


async def get_teacher_participant_stats(db: AsyncSession, teacher_id: str) -> TeacherParticipantStats:
    row = (
        await db.execute(
            select(
                func.count(YogaClass.id).label("total_classes"),
                func.coalesce(func.sum(YogaClass.current_participants), 0).label("total_participants"),
                func.coalesce(func.sum(YogaClass.max_participants), 0).label("total_capacity"),
                func.coalesce(
                    func.sum(
                        case(
                            (YogaClass.current_participants >= YogaClass.max_participants, 1),
                            else_=0,
                        )
                    ),
                    0,
                ).label("full_classes"),
            ).where(YogaClass.teacher_id == teacher_id)
        )
    ).one()

    total_classes = row.total_classes
    total_participants = int(row.total_participants)
    total_capacity = int(row.total_capacity)
    return TeacherParticipantStats(
        teacher_id=teacher_id,
        total_classes=total_classes,
        total_participants=total_participants,
        average_participants=round(total_participants / total_classes, 2) if total_classes else 0.0,
        full_classes=int(row.full_classes),
        utilization_rate=round(total_participants / total_capacity * 100, 2) if total_capacity else 0.0,
    )
