"""
Class endpoints: catalog, eligibility, participant-count reconciliation and
audit views.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.db.session import get_db
from yoga_booking.schemas.auth import Identity, Role
from yoga_booking.schemas.yoga_class import (
    AuditRecordResponse,
    ClassCreate,
    ClassListResponse,
    ClassResponse,
    EligibilityResponse,
    ParticipantStatus,
    SyncResponse,
    SyncResult,
)
from yoga_booking.services.audit_service import DEFAULT_AUDIT_LIMIT
from yoga_booking.services.class_service import create_class, delete_class, get_class, list_classes
from yoga_booking.services.eligibility_service import can_book
from yoga_booking.services.insights_service import get_class_audit, get_participant_status
from yoga_booking.services.reconciliation_service import (
    sync_all_participant_counts,
    sync_participant_count,
)
from yoga_booking.services.cache_service import (
    get_cached_classes,
    invalidate_class_cache,
    set_cached_classes,
)
from yoga_booking.core.security import ensure_acting_for, get_current_identity, require_role
from yoga_booking.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/classes", tags=["Classes"])


@router.post("/", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
async def create_class_endpoint(
    class_data: ClassCreate,
    identity: Identity = Depends(require_role(Role.TEACHER)),
    db: AsyncSession = Depends(get_db),
):
    """Schedule a new class. Teachers only."""
    yoga_class = await create_class(db, class_data, identity.user_id)
    await invalidate_class_cache()
    return yoga_class


@router.get("/", response_model=ClassListResponse)
async def list_classes_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
):
    """
    List classes with pagination.
    Results are cached in Redis and invalidated whenever a class or a
    participant count changes.
    """
    cached = await get_cached_classes(page, page_size, upcoming_only)
    if cached:
        cached["cached"] = True
        return ClassListResponse(**cached)

    classes, total = await list_classes(db, page, page_size, upcoming_only)
    response_data = {
        "classes": [ClassResponse.model_validate(c).model_dump(mode="json") for c in classes],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_classes(page, page_size, upcoming_only, response_data)

    return ClassListResponse(**response_data)


@router.post("/sync", response_model=list[SyncResult])
async def sync_all_endpoint(
    identity: Identity = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Reconcile every class's participant count. Returns only the classes that changed."""
    corrections = await sync_all_participant_counts(db)
    if corrections:
        await invalidate_class_cache()
    logger.info("participant_sync_requested", scope="all", requested_by=identity.user_id)
    return [SyncResult(**c.to_dict()) for c in corrections]


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class_endpoint(
    class_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Get a single class. Not cached: shows the live participant count."""
    return await get_class(db, class_id)


@router.delete("/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class_endpoint(
    class_id: int,
    identity: Identity = Depends(require_role(Role.TEACHER)),
    db: AsyncSession = Depends(get_db),
):
    """Delete one of the caller's classes together with its bookings."""
    await delete_class(db, class_id, identity.user_id)
    await invalidate_class_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{class_id}/eligibility", response_model=EligibilityResponse)
async def eligibility_endpoint(
    class_id: int,
    student_id: Optional[str] = Query(None),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    Advisory pre-check for the Book button. Students check themselves;
    teachers and admins may check any student.
    """
    if identity.role == Role.STUDENT or student_id is None:
        student_id = ensure_acting_for(identity, student_id)
    return await can_book(db, student_id, class_id)


@router.post("/{class_id}/sync", response_model=SyncResponse)
async def sync_class_endpoint(
    class_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Recount one class's participants from its bookings and repair any drift."""
    changed = await sync_participant_count(db, class_id)
    if changed:
        await invalidate_class_cache()
    logger.info("participant_sync_requested", class_id=class_id, requested_by=identity.user_id, changed=changed)
    return SyncResponse(class_id=class_id, changed=changed)


@router.get("/{class_id}/participants", response_model=ParticipantStatus)
async def participant_status_endpoint(
    class_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Stored participant count next to the real-time count."""
    return await get_participant_status(db, class_id)


@router.get("/{class_id}/audit", response_model=list[AuditRecordResponse])
async def audit_endpoint(
    class_id: int,
    limit: int = Query(DEFAULT_AUDIT_LIMIT, ge=1, le=500),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """Why did this class's count change? Newest first; the class teacher and admins only."""
    return await get_class_audit(db, class_id, identity, limit)
