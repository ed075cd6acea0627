"""
Class Ledger: a scheduled yoga class with its capacity and cached occupancy.

Key design decisions:
- `current_participants` is denormalized (avoids COUNT over bookings on every
  read). It must equal the number of countable bookings; the reconciler
  repairs it when it drifts.
- Only the lower bound is a CHECK constraint. Capacity is enforced when a
  countable booking is created, so a later payment completion may push the
  count past `max_participants` without failing the write.
- teacher_id is the opaque id issued by the identity provider.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship

from yoga_booking.db.base import Base, TimestampMixin
from yoga_booking.models.enums import ClassLevel, sql_in


class YogaClass(Base, TimestampMixin):
    __tablename__ = "yoga_classes"

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(String(64), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    duration = Column(Integer, nullable=False, default=60)
    max_participants = Column(Integer, nullable=False, default=10)
    current_participants = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False, default=25)
    level = Column(String(20), nullable=False, default=ClassLevel.BEGINNER.value)
    type = Column(String(50), nullable=False, default="Hatha")
    location = Column(String(255), nullable=False, default="Studio A")
    is_virtual = Column(Boolean, nullable=False, default=False)
    meeting_link = Column(String(500), nullable=True)

    bookings = relationship(
        "Booking",
        back_populates="yoga_class",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("current_participants >= 0", name="check_current_participants_non_negative"),
        CheckConstraint("max_participants > 0", name="check_max_participants_positive"),
        CheckConstraint("duration >= 15 AND duration <= 180", name="check_duration_range"),
        CheckConstraint("price >= 0 AND price <= 999", name="check_price_range"),
        CheckConstraint(f"level IN ({sql_in(ClassLevel)})", name="check_class_level"),
        Index("ix_yoga_classes_date_time", "date", "time"),
        Index("ix_yoga_classes_teacher_id", "teacher_id"),
        Index("ix_yoga_classes_teacher_date", "teacher_id", "date"),
    )

    @property
    def starts_at(self) -> datetime:
        """Scheduled start; date and time are stored as UTC wall-clock values."""
        return datetime.combine(self.date, self.time, tzinfo=timezone.utc)

    def has_started(self, now: datetime = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.starts_at <= now

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants

    def __repr__(self) -> str:
        return (
            f"<YogaClass(id={self.id}, title={self.title}, "
            f"participants={self.current_participants}/{self.max_participants})>"
        )
