from __future__ import annotations
from typing import TYPE_CHECKING, Any, Optional
from datetime import date, time
from enum import Enum
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    String,
    Time,
    UniqueConstraint,
    Enum as sqlalchemy_enum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .db_base_model import DbBaseModel

if TYPE_CHECKING:
    from .doctor_table import Doctor


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_date(cls, value: date) -> "DayOfWeek":
        return list(cls)[value.weekday()]


class ExceptionKind(str, Enum):
    UNAVAILABLE = "unavailable"  # whole date blocked
    CUSTOM = "custom"  # custom_slots replace the weekly template


class ScheduleDay(DbBaseModel):
    """One weekday of a doctor's recurring weekly schedule."""

    __tablename__ = "schedule_days"
    __table_args__ = (
        UniqueConstraint("doctor_id", "day_of_week", name="uq_schedule_days_doctor_day"),
    )

    schedule_day_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )
    doctor_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("doctors.doctor_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    day_of_week: Mapped[DayOfWeek] = mapped_column(
        sqlalchemy_enum(DayOfWeek, name="day_of_week", values_callable=_enum_values),
        nullable=False,
    )
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    doctor: Mapped["Doctor"] = relationship("Doctor", back_populates="schedule_days")
    slots: Mapped[list["ScheduleSlot"]] = relationship(
        "ScheduleSlot",
        back_populates="schedule_day",
        cascade="all, delete-orphan",
        order_by="ScheduleSlot.start_time",
        lazy="selectin",
    )


class ScheduleSlot(DbBaseModel):
    """A (start, end) template range inside a ScheduleDay."""

    __tablename__ = "schedule_slots"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_schedule_slots_time_order"),
    )

    slot_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )
    schedule_day_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("schedule_days.schedule_day_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    schedule_day: Mapped["ScheduleDay"] = relationship(
        "ScheduleDay", back_populates="slots"
    )


class ScheduleException(DbBaseModel):
    """Date-specific override of the weekly schedule. One per (doctor, date)."""

    __tablename__ = "schedule_exceptions"
    __table_args__ = (
        UniqueConstraint(
            "doctor_id", "exception_date", name="uq_schedule_exceptions_doctor_date"
        ),
    )

    exception_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )
    doctor_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("doctors.doctor_id", ondelete="CASCADE"),
        nullable=False,
    )
    exception_date: Mapped[date] = mapped_column(Date, nullable=False)
    kind: Mapped[ExceptionKind] = mapped_column(
        sqlalchemy_enum(
            ExceptionKind, name="schedule_exception_kind", values_callable=_enum_values
        ),
        nullable=False,
    )
    # "HH:MM" strings, sorted; empty unless kind == custom
    custom_slots: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)
    reason: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    doctor: Mapped["Doctor"] = relationship(
        "Doctor", back_populates="schedule_exceptions"
    )

    @property
    def slot_times(self) -> list[time]:
        return [time.fromisoformat(value) for value in self.custom_slots]


__all__ = [
    "DayOfWeek",
    "ExceptionKind",
    "ScheduleDay",
    "ScheduleSlot",
    "ScheduleException",
]
