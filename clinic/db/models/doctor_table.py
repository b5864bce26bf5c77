from __future__ import annotations
from typing import TYPE_CHECKING, Optional
from sqlalchemy import Boolean, Float, String
from sqlalchemy.orm import relationship, Mapped, mapped_column
from .db_base_model import DbBaseModel

if TYPE_CHECKING:
    from .schedule_tables import ScheduleDay, ScheduleException
    from .booking_table import Booking


class Doctor(DbBaseModel):
    __tablename__ = "doctors"

    doctor_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    doctor_code: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
        default=DbBaseModel.generate_short_code,
        unique=True,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    specialization: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Inactive doctors are listed but never bookable
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    schedule_days: Mapped[list["ScheduleDay"]] = relationship(
        "ScheduleDay",
        back_populates="doctor",
        cascade="all, delete-orphan",
    )

    schedule_exceptions: Mapped[list["ScheduleException"]] = relationship(
        "ScheduleException",
        back_populates="doctor",
        cascade="all, delete-orphan",
    )

    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="doctor")


__all__ = ["Doctor"]
