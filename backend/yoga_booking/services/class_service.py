"""
Class catalog: teachers create and remove classes, everyone browses them.
"""

from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.core.exceptions import Forbidden, NotFound, PastClass
from yoga_booking.core.logging import get_logger
from yoga_booking.db.session import transaction
from yoga_booking.models.yoga_class import YogaClass
from yoga_booking.schemas.yoga_class import ClassCreate

logger = get_logger(__name__)


async def create_class(db: AsyncSession, class_data: ClassCreate, teacher_id: str) -> YogaClass:
    """Create a new class with no participants."""
    yoga_class = YogaClass(
        teacher_id=teacher_id,
        title=class_data.title,
        description=class_data.description,
        date=class_data.date,
        time=class_data.time,
        duration=class_data.duration,
        max_participants=class_data.max_participants,
        current_participants=0,
        price=class_data.price,
        level=class_data.level.value,
        type=class_data.type,
        location=class_data.location,
        is_virtual=class_data.is_virtual,
        meeting_link=class_data.meeting_link,
    )
    if yoga_class.has_started():
        raise PastClass("Class must be scheduled in the future")

    async with transaction(db):
        db.add(yoga_class)
        await db.flush()
        await db.refresh(yoga_class)

    logger.info(
        "class_created",
        class_id=yoga_class.id,
        teacher_id=teacher_id,
        title=yoga_class.title,
        capacity=yoga_class.max_participants,
    )
    return yoga_class


async def get_class(db: AsyncSession, class_id: int) -> YogaClass:
    result = await db.execute(
        select(YogaClass)
        .where(YogaClass.id == class_id)
        .execution_options(populate_existing=True)
    )
    yoga_class = result.scalar_one_or_none()

    if not yoga_class:
        raise NotFound("Class", class_id)
    return yoga_class


async def list_classes(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
) -> tuple[list[YogaClass], int]:
    """
    List classes with pagination, ordered by start.
    Uses the ix_yoga_classes_date_time index for the date filter and ordering.
    """
    query = select(YogaClass)

    if upcoming_only:
        query = query.where(YogaClass.date >= datetime.now(timezone.utc).date())

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    classes_query = (
        query
        .order_by(YogaClass.date.asc(), YogaClass.time.asc(), YogaClass.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(classes_query)
    classes = list(result.scalars().all())

    return classes, total


async def delete_class(db: AsyncSession, class_id: int, teacher_id: str) -> None:
    """Delete a class owned by `teacher_id`; its bookings and audit trail go with it."""
    async with transaction(db):
        yoga_class = await get_class(db, class_id)
        if yoga_class.teacher_id != teacher_id:
            raise Forbidden("Only the teacher who created a class can delete it")
        await db.delete(yoga_class)

    logger.info("class_deleted", class_id=class_id, teacher_id=teacher_id)
