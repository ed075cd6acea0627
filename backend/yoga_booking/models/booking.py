"""
Booking Ledger: a student's reservation of a seat in a class.

Key design decisions:
- Partial unique index on (student_id, class_id) WHERE status = 'confirmed':
  one live booking per student per class, while cancelled rows stay around
  as history and do not block rebooking.
- A booking occupies a seat only while it is countable (confirmed and paid).
- Deleting a class deletes its bookings (ON DELETE CASCADE).
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
    text,
)
from sqlalchemy.orm import relationship

from yoga_booking.db.base import Base, TimestampMixin
from yoga_booking.models.enums import BookingStatus, PaymentStatus, sql_in

CONFIRMED_ONLY = text("status = 'confirmed'")
COUNTABLE_ONLY = text("status = 'confirmed' AND payment_status = 'completed'")


def is_countable(status: str, payment_status: str) -> bool:
    """A booking counts toward current_participants iff confirmed and paid."""
    return status == BookingStatus.CONFIRMED.value and payment_status == PaymentStatus.COMPLETED.value


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(String(64), nullable=False)
    class_id = Column(
        Integer,
        ForeignKey("yoga_classes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    booking_date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    yoga_class = relationship("YogaClass", back_populates="bookings")

    __table_args__ = (
        CheckConstraint(f"status IN ({sql_in(BookingStatus)})", name="check_booking_status"),
        CheckConstraint(f"payment_status IN ({sql_in(PaymentStatus)})", name="check_booking_payment_status"),
        Index(
            "uq_bookings_student_class_confirmed",
            "student_id",
            "class_id",
            unique=True,
            postgresql_where=CONFIRMED_ONLY,
            sqlite_where=CONFIRMED_ONLY,
        ),
        Index("ix_bookings_student_class", "student_id", "class_id"),
        Index("ix_bookings_class_status", "class_id", "status"),
        Index("ix_bookings_class_payment", "class_id", "payment_status"),
        Index("ix_bookings_student_status", "student_id", "status"),
        Index(
            "ix_bookings_countable",
            "class_id",
            postgresql_where=COUNTABLE_ONLY,
            sqlite_where=COUNTABLE_ONLY,
        ),
    )

    @property
    def countable(self) -> bool:
        return is_countable(self.status, self.payment_status)

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, student={self.student_id}, class={self.class_id}, "
            f"status={self.status}, payment={self.payment_status})>"
        )
