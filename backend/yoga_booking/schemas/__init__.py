from yoga_booking.schemas.auth import Identity, Role
from yoga_booking.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingResponse,
    PaymentUpdate,
    PaymentUpdateResponse,
)
from yoga_booking.schemas.yoga_class import (
    AuditRecordResponse,
    ClassCreate,
    ClassListResponse,
    ClassResponse,
    EligibilityResponse,
    ParticipantStatus,
    SyncResponse,
    SyncResult,
    TeacherParticipantStats,
)

__all__ = [
    "Identity", "Role",
    "BookingCreate", "BookingResponse", "BookingCancelResponse", "PaymentUpdate", "PaymentUpdateResponse",
    "ClassCreate", "ClassResponse", "ClassListResponse", "EligibilityResponse",
    "SyncResponse", "SyncResult", "ParticipantStatus", "AuditRecordResponse", "TeacherParticipantStats",
]
