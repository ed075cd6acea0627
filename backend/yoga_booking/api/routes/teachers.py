"""
Teacher dashboard endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.core.exceptions import Forbidden
from yoga_booking.core.security import get_current_identity
from yoga_booking.db.session import get_db
from yoga_booking.schemas.auth import Identity, Role
from yoga_booking.schemas.yoga_class import TeacherParticipantStats
from yoga_booking.services.insights_service import get_teacher_participant_stats

router = APIRouter(prefix="/teachers", tags=["Teachers"])


@router.get("/{teacher_id}/participant-stats", response_model=TeacherParticipantStats)
async def participant_stats_endpoint(
    teacher_id: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Occupancy across a teacher's classes. `me` means the caller."""
    if teacher_id == "me":
        teacher_id = identity.user_id
    if identity.role != Role.ADMIN and teacher_id != identity.user_id:
        raise Forbidden("Teachers can only view their own statistics")
    return await get_teacher_participant_stats(db, teacher_id)
