"""
Pydantic schemas for classes, eligibility and participant-count reporting.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from yoga_booking.models.enums import AuditAction, ClassLevel


class ClassCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=2000)
    date: dt.date
    time: dt.time
    duration: int = Field(60, ge=15, le=180)
    max_participants: int = Field(10, gt=0, le=1000)
    price: Decimal = Field(Decimal("25.00"), ge=0, le=999, decimal_places=2)
    level: ClassLevel = ClassLevel.BEGINNER
    type: str = Field("Hatha", min_length=1, max_length=50)
    location: str = Field("Studio A", min_length=1, max_length=255)
    is_virtual: bool = False
    meeting_link: Optional[str] = Field(None, max_length=500)


class ClassResponse(BaseModel):
    id: int
    teacher_id: str
    title: str
    description: str
    date: dt.date
    time: dt.time
    duration: int
    max_participants: int
    current_participants: int
    price: float
    level: ClassLevel
    type: str
    location: str
    is_virtual: bool
    meeting_link: Optional[str]
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class ClassListResponse(BaseModel):
    classes: list[ClassResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class EligibilityResponse(BaseModel):
    can_book: bool
    reason: Optional[str] = None
    booking_id: Optional[int] = None
    current_count: Optional[int] = None
    max_participants: Optional[int] = None


class SyncResponse(BaseModel):
    class_id: int
    changed: bool


class SyncResult(BaseModel):
    class_id: int
    old_count: int
    new_count: int
    fixed: bool = True


class ParticipantStatus(BaseModel):
    class_id: int
    stored_count: int
    actual_count: int
    max_participants: int
    in_sync: bool


class AuditRecordResponse(BaseModel):
    id: int
    class_id: int
    student_id: Optional[str]
    booking_id: Optional[int]
    action: AuditAction
    old_count: int
    new_count: int
    reason: Optional[str]
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class TeacherParticipantStats(BaseModel):
    teacher_id: str
    total_classes: int
    total_participants: int
    average_participants: float
    full_classes: int
    utilization_rate: float
