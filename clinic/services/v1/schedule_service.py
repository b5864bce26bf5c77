from datetime import date
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from common import NotFoundError, ValidationError, get_app_logger
from clinic.db.models import (
    DayOfWeek,
    Doctor,
    ExceptionKind,
    ScheduleDay,
    ScheduleException,
    ScheduleSlot,
)
from clinic.db.schemas import (
    DaySchedule,
    ScheduleExceptionCreate,
    TimeSlotTemplate,
    WeeklySchedule,
)

logger = get_app_logger(__name__)


def validate_weekly_schedule(schedule: WeeklySchedule) -> None:
    """
    Raises ValidationError when the schedule breaks a day invariant:
    slots on an unavailable day, start >= end, overlapping ranges, or the
    same weekday listed twice. An available day with no slots is fine.
    """
    seen: set[DayOfWeek] = set()
    for day in schedule.days:
        if day.day in seen:
            raise ValidationError(f"{day.day.value} listed more than once", field="days")
        seen.add(day.day)

        if not day.is_available and day.time_slots:
            raise ValidationError(
                f"{day.day.value} is unavailable but has time slots",
                field="time_slots",
            )

        ordered = sorted(day.time_slots, key=lambda slot: slot.start)
        for slot in ordered:
            if slot.start >= slot.end:
                raise ValidationError(
                    f"{day.day.value}: slot start {slot.start} must be before end {slot.end}",
                    field="time_slots",
                )
        for previous, current in zip(ordered, ordered[1:]):
            if current.start < previous.end:
                raise ValidationError(
                    f"{day.day.value}: slots {previous.start}-{previous.end} "
                    f"and {current.start}-{current.end} overlap",
                    field="time_slots",
                )


class ScheduleService:
    """Weekly templates and date exceptions for one doctor at a time."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _require_doctor(self, doctor_id: str) -> Doctor:
        doctor = await self.db.get(Doctor, doctor_id)
        if doctor is None:
            raise NotFoundError(f"Doctor {doctor_id} not found")
        return doctor

    async def get_weekly_schedule(self, doctor_id: str) -> WeeklySchedule:
        """
        All seven weekdays, Monday first. Days never saved come back as
        unavailable with no slots.
        """
        query = (
            select(ScheduleDay)
            .where(ScheduleDay.doctor_id == doctor_id)
            .execution_options(logging_token="ScheduleService.get_weekly_schedule")
        )
        rows = {row.day_of_week: row for row in (await self.db.scalars(query)).all()}

        days = []
        for day in DayOfWeek:
            row = rows.get(day)
            if row is None:
                days.append(DaySchedule(day=day))
                continue
            days.append(
                DaySchedule(
                    day=day,
                    is_available=row.is_available,
                    time_slots=[
                        TimeSlotTemplate(start=slot.start_time, end=slot.end_time)
                        for slot in row.slots
                    ],
                )
            )
        return WeeklySchedule(doctor_id=doctor_id, days=days)

    async def set_weekly_schedule(
        self, doctor_id: str, schedule: WeeklySchedule
    ) -> WeeklySchedule:
        """Replace the whole weekly schedule. Omitted days become unavailable."""
        await self._require_doctor(doctor_id)
        validate_weekly_schedule(schedule)

        existing = await self.db.scalars(
            select(ScheduleDay).where(ScheduleDay.doctor_id == doctor_id)
        )
        for row in existing.all():
            await self.db.delete(row)
        # Deletes must hit the table before the (doctor, day) rows are re-inserted
        await self.db.flush()

        for day in DayOfWeek:
            entry = schedule.for_day(day)
            self.db.add(
                ScheduleDay(
                    doctor_id=doctor_id,
                    day_of_week=day,
                    is_available=entry.is_available,
                    slots=[
                        ScheduleSlot(start_time=slot.start, end_time=slot.end)
                        for slot in sorted(entry.time_slots, key=lambda s: s.start)
                    ],
                )
            )
        await self.db.flush()

        logger.info(
            "Weekly schedule replaced",
            doctor_id=doctor_id,
            available_days=[d.day.value for d in schedule.days if d.is_available],
        )
        return await self.get_weekly_schedule(doctor_id)

    async def get_exception(
        self, doctor_id: str, on_date: date
    ) -> Optional[ScheduleException]:
        query = (
            select(ScheduleException)
            .where(
                ScheduleException.doctor_id == doctor_id,
                ScheduleException.exception_date == on_date,
            )
            .execution_options(logging_token="ScheduleService.get_exception")
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def get_exceptions(
        self, doctor_id: str, start_date: date, end_date: date
    ) -> list[ScheduleException]:
        if start_date > end_date:
            raise ValidationError("start date must not be after end date", field="start")

        query = (
            select(ScheduleException)
            .where(
                ScheduleException.doctor_id == doctor_id,
                ScheduleException.exception_date >= start_date,
                ScheduleException.exception_date <= end_date,
            )
            .order_by(ScheduleException.exception_date)
            .execution_options(logging_token="ScheduleService.get_exceptions")
        )
        return list((await self.db.scalars(query)).all())

    async def upsert_exception(
        self,
        doctor_id: str,
        on_date: date,
        data: ScheduleExceptionCreate,
    ) -> ScheduleException:
        """Insert or replace the exception for (doctor, date)."""
        await self._require_doctor(doctor_id)

        if data.kind == ExceptionKind.CUSTOM and not data.custom_slots:
            raise ValidationError(
                "A custom exception needs at least one slot; "
                "use 'unavailable' to block the date",
                field="custom_slots",
            )
        if data.kind == ExceptionKind.UNAVAILABLE and data.custom_slots:
            raise ValidationError(
                "An unavailable exception cannot carry slots", field="custom_slots"
            )

        for slot in data.custom_slots:
            if slot.second or slot.microsecond or slot.tzinfo is not None:
                raise ValidationError(
                    f"Custom slot {slot.isoformat()} must be a whole minute "
                    "without an offset",
                    field="custom_slots",
                )
        # "HH:MM" sorts the same as the times it encodes
        slots = sorted({slot.strftime("%H:%M") for slot in data.custom_slots})

        existing = await self.get_exception(doctor_id, on_date)
        if existing is None:
            existing = ScheduleException(doctor_id=doctor_id, exception_date=on_date)
            self.db.add(existing)

        existing.kind = data.kind
        existing.custom_slots = slots
        existing.reason = data.reason
        await self.db.flush()

        logger.info(
            "Schedule exception saved",
            doctor_id=doctor_id,
            date=on_date.isoformat(),
            kind=data.kind.value,
            slots=slots,
        )
        return existing

    async def remove_exception(self, doctor_id: str, on_date: date) -> None:
        existing = await self.get_exception(doctor_id, on_date)
        if existing is None:
            raise NotFoundError(
                f"No schedule exception for doctor {doctor_id} on {on_date.isoformat()}"
            )
        await self.db.delete(existing)
        await self.db.flush()
        logger.info(
            "Schedule exception removed", doctor_id=doctor_id, date=on_date.isoformat()
        )


__all__ = ["ScheduleService", "validate_weekly_schedule"]
