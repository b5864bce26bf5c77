from datetime import date, datetime, time, timedelta
from typing import Callable, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from common import NotFoundError, get_app_logger
from common.scripts import iter_date_range
from clinic.db.models import (
    ACTIVE_STATUSES,
    Booking,
    DayOfWeek,
    Doctor,
    ExceptionKind,
    ScheduleDay,
    ScheduleException,
)
from .schedule_service import ScheduleService

logger = get_app_logger(__name__)


def expand_range(start: time, end: time, interval_minutes: int) -> list[time]:
    """
    Discrete slot start times inside [start, end).

    A slot is only emitted when it fits completely, so a 09:00-10:15 range
    with a 30 minute interval gives 09:00 and 09:30.
    """
    step = timedelta(minutes=interval_minutes)
    anchor = date.min
    current = datetime.combine(anchor, start)
    limit = datetime.combine(anchor, end)

    slots = []
    while current + step <= limit:
        slots.append(current.time())
        current += step
    return slots


class AvailabilityService:
    """
    Resolves the bookable times of a doctor on a date.

    Precedence: booking horizon, then a date exception, then the weekday
    template. Nothing here writes to the database.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        horizon_days: int = 30,
        slot_interval_minutes: int = 30,
        today: Callable[[], date] = date.today,
    ):
        self.db = db
        self.horizon_days = horizon_days
        self.slot_interval_minutes = slot_interval_minutes
        self._today = today
        self.schedules = ScheduleService(db)

    def within_horizon(self, on_date: date) -> bool:
        today = self._today()
        return today <= on_date <= today + timedelta(days=self.horizon_days)

    def _slots_from(
        self, exception: Optional[ScheduleException], day: Optional[ScheduleDay]
    ) -> list[time]:
        if exception is not None:
            if exception.kind == ExceptionKind.UNAVAILABLE:
                return []
            return exception.slot_times

        if day is None or not day.is_available:
            return []

        slots: set[time] = set()
        for template in day.slots:
            slots.update(
                expand_range(
                    template.start_time, template.end_time, self.slot_interval_minutes
                )
            )
        return sorted(slots)

    async def resolve_slots(self, doctor_id: str, on_date: date) -> list[time]:
        if not self.within_horizon(on_date):
            return []

        exception = await self.schedules.get_exception(doctor_id, on_date)
        if exception is not None:
            return self._slots_from(exception, None)

        query = (
            select(ScheduleDay)
            .where(
                ScheduleDay.doctor_id == doctor_id,
                ScheduleDay.day_of_week == DayOfWeek.from_date(on_date),
            )
            .execution_options(logging_token="AvailabilityService.resolve_slots")
        )
        day = (await self.db.execute(query)).scalar_one_or_none()
        return self._slots_from(None, day)

    async def _require_active_doctor(self, doctor_id: str) -> Doctor:
        doctor = await self.db.get(Doctor, doctor_id)
        if doctor is None or not doctor.is_active:
            raise NotFoundError(f"Doctor {doctor_id} not found or inactive")
        return doctor

    async def find_available_slots(self, doctor_id: str, on_date: date) -> list[time]:
        """Resolved slots minus the ones held by a pending or confirmed booking."""
        await self._require_active_doctor(doctor_id)

        slots = await self.resolve_slots(doctor_id, on_date)
        if not slots:
            return []

        query = (
            select(Booking.booking_time)
            .where(
                Booking.doctor_id == doctor_id,
                Booking.booking_date == on_date,
                Booking.status.in_(ACTIVE_STATUSES),
            )
            .execution_options(logging_token="AvailabilityService.find_available_slots")
        )
        taken = set((await self.db.scalars(query)).all())

        available = [slot for slot in slots if slot not in taken]
        logger.debug(
            "Available slots resolved",
            doctor_id=doctor_id,
            date=on_date.isoformat(),
            resolved=len(slots),
            taken=len(taken),
        )
        return available

    async def bookable_dates(self, doctor_id: str) -> list[date]:
        await self._require_active_doctor(doctor_id)

        today = self._today()
        last_day = today + timedelta(days=self.horizon_days)

        # Whole horizon in two lookups instead of resolving date by date
        exceptions = {
            exception.exception_date: exception
            for exception in await self.schedules.get_exceptions(
                doctor_id, today, last_day
            )
        }
        query = (
            select(ScheduleDay)
            .where(ScheduleDay.doctor_id == doctor_id)
            .execution_options(logging_token="AvailabilityService.bookable_dates")
        )
        weekdays = {
            row.day_of_week: row for row in (await self.db.scalars(query)).all()
        }

        return [
            day
            for day in iter_date_range(today, last_day)
            if self._slots_from(
                exceptions.get(day), weekdays.get(DayOfWeek.from_date(day))
            )
        ]


__all__ = ["AvailabilityService", "expand_range"]
