"""
Audit Log: append-only record of every participant-count mutation.
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, func

from yoga_booking.db.base import Base
from yoga_booking.models.enums import AuditAction, sql_in


class ParticipantCountAudit(Base):
    __tablename__ = "participant_count_audit"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("yoga_classes.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(String(64), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(20), nullable=False)
    old_count = Column(Integer, nullable=False)
    new_count = Column(Integer, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        CheckConstraint(f"action IN ({sql_in(AuditAction)})", name="check_audit_action"),
        Index("ix_participant_audit_class_id", "class_id"),
        Index("ix_participant_audit_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ParticipantCountAudit(class={self.class_id}, action={self.action}, "
            f"{self.old_count}->{self.new_count})>"
        )
