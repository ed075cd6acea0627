from enum import Enum


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class ClassLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class AuditAction(str, Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"
    SYNC = "sync"


def sql_in(enum_cls) -> str:
    """Render an enum's values for a CHECK ... IN (...) clause."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
