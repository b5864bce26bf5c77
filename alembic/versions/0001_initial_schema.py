"""initial schema: doctors, weekly schedules, exceptions, bookings

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

day_of_week = sa.Enum(
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
    name="day_of_week",
)
exception_kind = sa.Enum("unavailable", "custom", name="schedule_exception_kind")
booking_status = sa.Enum(
    "pending",
    "confirmed",
    "rejected",
    "cancelled",
    "completed",
    name="booking_status",
)

active_slot_predicate = sa.text("status IN ('pending', 'confirmed')")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "doctors",
        sa.Column("doctor_id", sa.String(36), primary_key=True),
        sa.Column("doctor_code", sa.String(12), nullable=False, unique=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("specialization", sa.String(100), nullable=False),
        sa.Column("email", sa.String(200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("rating", sa.Float(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "schedule_days",
        sa.Column("schedule_day_id", sa.String(36), primary_key=True),
        sa.Column(
            "doctor_id",
            sa.String(36),
            sa.ForeignKey("doctors.doctor_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("day_of_week", day_of_week, nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint(
            "doctor_id", "day_of_week", name="uq_schedule_days_doctor_day"
        ),
    )
    op.create_index("ix_schedule_days_doctor_id", "schedule_days", ["doctor_id"])

    op.create_table(
        "schedule_slots",
        sa.Column("slot_id", sa.String(36), primary_key=True),
        sa.Column(
            "schedule_day_id",
            sa.String(36),
            sa.ForeignKey("schedule_days.schedule_day_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "start_time < end_time", name="ck_schedule_slots_time_order"
        ),
    )
    op.create_index(
        "ix_schedule_slots_schedule_day_id", "schedule_slots", ["schedule_day_id"]
    )

    op.create_table(
        "schedule_exceptions",
        sa.Column("exception_id", sa.String(36), primary_key=True),
        sa.Column(
            "doctor_id",
            sa.String(36),
            sa.ForeignKey("doctors.doctor_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("exception_date", sa.Date(), nullable=False),
        sa.Column("kind", exception_kind, nullable=False),
        sa.Column("custom_slots", sa.JSON(), nullable=False),
        sa.Column("reason", sa.String(200), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "doctor_id", "exception_date", name="uq_schedule_exceptions_doctor_date"
        ),
    )

    op.create_table(
        "bookings",
        sa.Column("booking_id", sa.String(36), primary_key=True),
        sa.Column("patient_id", sa.String(36), nullable=False),
        sa.Column("patient_name", sa.String(100), nullable=False),
        sa.Column("patient_email", sa.String(200), nullable=True),
        sa.Column("patient_phone", sa.String(30), nullable=False),
        sa.Column("patient_gender", sa.String(20), nullable=False),
        sa.Column("patient_age", sa.Integer(), nullable=False),
        sa.Column(
            "doctor_id",
            sa.String(36),
            sa.ForeignKey("doctors.doctor_id"),
            nullable=False,
        ),
        sa.Column("doctor_name", sa.String(100), nullable=False),
        sa.Column("specialization", sa.String(100), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("booking_time", sa.Time(), nullable=False),
        sa.Column("health_issue", sa.Text(), nullable=False),
        sa.Column("status", booking_status, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "uq_bookings_active_slot",
        "bookings",
        ["doctor_id", "booking_date", "booking_time"],
        unique=True,
        postgresql_where=active_slot_predicate,
        sqlite_where=active_slot_predicate,
    )
    op.create_index("ix_bookings_patient_id", "bookings", ["patient_id"])
    op.create_index("ix_bookings_doctor_date", "bookings", ["doctor_id", "booking_date"])


def downgrade() -> None:
    op.drop_index("ix_bookings_doctor_date", table_name="bookings")
    op.drop_index("ix_bookings_patient_id", table_name="bookings")
    op.drop_index("uq_bookings_active_slot", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("schedule_exceptions")
    op.drop_index("ix_schedule_slots_schedule_day_id", table_name="schedule_slots")
    op.drop_table("schedule_slots")
    op.drop_index("ix_schedule_days_doctor_id", table_name="schedule_days")
    op.drop_table("schedule_days")
    op.drop_table("doctors")

    bind = op.get_bind()
    for enum_type in (booking_status, exception_kind, day_of_week):
        enum_type.drop(bind, checkfirst=True)
