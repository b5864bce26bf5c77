from __future__ import annotations
from typing import TYPE_CHECKING, Optional
from datetime import date, time
from enum import Enum
from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    text,
    Enum as sqlalchemy_Enum,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .db_base_model import DbBaseModel

if TYPE_CHECKING:
    from .doctor_table import Doctor


class BookingStatus(str, Enum):
    PENDING = "pending"  # Requested by the patient, awaiting the doctor
    CONFIRMED = "confirmed"  # Accepted by the doctor or an admin
    REJECTED = "rejected"  # Declined before confirmation
    CANCELLED = "cancelled"  # Withdrawn by patient, doctor or admin
    COMPLETED = "completed"  # Visit took place

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})
TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
)

# Must stay in sync with ACTIVE_STATUSES
_ACTIVE_SLOT_PREDICATE = text("status IN ('pending', 'confirmed')")


class Booking(DbBaseModel):
    __tablename__ = "bookings"
    __table_args__ = (
        # One pending/confirmed booking per doctor slot; the reservation
        # path relies on this index to reject concurrent double bookings.
        Index(
            "uq_bookings_active_slot",
            "doctor_id",
            "booking_date",
            "booking_time",
            unique=True,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
        ),
        Index("ix_bookings_patient_id", "patient_id"),
        Index("ix_bookings_doctor_date", "doctor_id", "booking_date"),
    )

    booking_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    # Patient snapshot, captured at booking time
    patient_id: Mapped[str] = mapped_column(String(36), nullable=False)
    patient_name: Mapped[str] = mapped_column(String(100), nullable=False)
    patient_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    patient_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    patient_gender: Mapped[str] = mapped_column(String(20), nullable=False)
    patient_age: Mapped[int] = mapped_column(Integer, nullable=False)

    # Doctor snapshot
    doctor_id: Mapped[str] = mapped_column(
        ForeignKey("doctors.doctor_id"),
        nullable=False,
    )
    doctor_name: Mapped[str] = mapped_column(String(100), nullable=False)
    specialization: Mapped[str] = mapped_column(String(100), nullable=False)

    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    booking_time: Mapped[time] = mapped_column(Time, nullable=False)
    health_issue: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        sqlalchemy_Enum(
            BookingStatus,
            name="booking_status",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=BookingStatus.PENDING,
    )

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    doctor: Mapped["Doctor"] = relationship("Doctor", back_populates="bookings")


__all__ = ["Booking", "BookingStatus", "ACTIVE_STATUSES", "TERMINAL_STATUSES"]
