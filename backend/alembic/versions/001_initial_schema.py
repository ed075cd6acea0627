"""Initial schema: yoga_classes, bookings and participant_count_audit.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CONFIRMED_ONLY = sa.text("status = 'confirmed'")
COUNTABLE_ONLY = sa.text("status = 'confirmed' AND payment_status = 'completed'")


def upgrade() -> None:
    op.create_table(
        "yoga_classes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("teacher_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, server_default=sa.text("60")),
        sa.Column("max_participants", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("current_participants", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default=sa.text("25")),
        sa.Column("level", sa.String(20), nullable=False, server_default=sa.text("'beginner'")),
        sa.Column("type", sa.String(50), nullable=False, server_default=sa.text("'Hatha'")),
        sa.Column("location", sa.String(255), nullable=False, server_default=sa.text("'Studio A'")),
        sa.Column("is_virtual", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("meeting_link", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("current_participants >= 0", name="check_current_participants_non_negative"),
        sa.CheckConstraint("max_participants > 0", name="check_max_participants_positive"),
        sa.CheckConstraint("duration >= 15 AND duration <= 180", name="check_duration_range"),
        sa.CheckConstraint("price >= 0 AND price <= 999", name="check_price_range"),
        sa.CheckConstraint(
            "level IN ('beginner', 'intermediate', 'advanced')", name="check_class_level"
        ),
    )
    op.create_index("ix_yoga_classes_id", "yoga_classes", ["id"])
    # Upcoming-class listings filter and sort on date then time.
    op.create_index("ix_yoga_classes_date_time", "yoga_classes", ["date", "time"])
    op.create_index("ix_yoga_classes_teacher_id", "yoga_classes", ["teacher_id"])
    op.create_index("ix_yoga_classes_teacher_date", "yoga_classes", ["teacher_id", "date"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("student_id", sa.String(64), nullable=False),
        sa.Column(
            "class_id",
            sa.Integer(),
            sa.ForeignKey("yoga_classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("booking_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('confirmed', 'cancelled')", name="check_booking_status"),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name="check_booking_payment_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_class_id", "bookings", ["class_id"])
    # One live booking per student per class; cancelled rows do not block rebooking.
    op.create_index(
        "uq_bookings_student_class_confirmed",
        "bookings",
        ["student_id", "class_id"],
        unique=True,
        postgresql_where=CONFIRMED_ONLY,
        sqlite_where=CONFIRMED_ONLY,
    )
    op.create_index("ix_bookings_student_class", "bookings", ["student_id", "class_id"])
    op.create_index("ix_bookings_class_status", "bookings", ["class_id", "status"])
    op.create_index("ix_bookings_class_payment", "bookings", ["class_id", "payment_status"])
    op.create_index("ix_bookings_student_status", "bookings", ["student_id", "status"])
    # Covers the reconciler's recount.
    op.create_index(
        "ix_bookings_countable",
        "bookings",
        ["class_id"],
        postgresql_where=COUNTABLE_ONLY,
        sqlite_where=COUNTABLE_ONLY,
    )

    op.create_table(
        "participant_count_audit",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "class_id",
            sa.Integer(),
            sa.ForeignKey("yoga_classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("student_id", sa.String(64), nullable=True),
        sa.Column(
            "booking_id",
            sa.Integer(),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("old_count", sa.Integer(), nullable=False),
        sa.Column("new_count", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("action IN ('increment', 'decrement', 'sync')", name="check_audit_action"),
    )
    op.create_index("ix_participant_count_audit_id", "participant_count_audit", ["id"])
    op.create_index("ix_participant_audit_class_id", "participant_count_audit", ["class_id"])
    op.create_index("ix_participant_audit_created_at", "participant_count_audit", ["created_at"])


def downgrade() -> None:
    op.drop_table("participant_count_audit")
    op.drop_table("bookings")
    op.drop_table("yoga_classes")
