from pydantic import BaseModel, Field, ConfigDict
from datetime import date, time
from typing import Optional
from ..models import DayOfWeek, ExceptionKind


class TimeSlotTemplate(BaseModel):
    """A bookable range; expanded into discrete slot start times."""

    start: time
    end: time


class DaySchedule(BaseModel):
    day: DayOfWeek
    is_available: bool = False
    time_slots: list[TimeSlotTemplate] = Field(default_factory=list)


class WeeklySchedule(BaseModel):
    doctor_id: Optional[str] = None
    days: list[DaySchedule] = Field(default_factory=list)

    def for_day(self, day: DayOfWeek) -> DaySchedule:
        for entry in self.days:
            if entry.day == day:
                return entry
        return DaySchedule(day=day)


class ScheduleExceptionCreate(BaseModel):
    kind: ExceptionKind
    custom_slots: list[time] = Field(default_factory=list)
    reason: Optional[str] = Field(None, max_length=200)


class ScheduleExceptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    doctor_id: str
    exception_date: date
    kind: ExceptionKind
    custom_slots: list[time]
    reason: Optional[str] = None


class SlotsResponse(BaseModel):
    doctor_id: str
    date: date
    slots: list[time] = Field(..., description="Slots from schedule and exceptions")
    available: list[time] = Field(..., description="Slots not held by a booking")


class BookableDatesResponse(BaseModel):
    doctor_id: str
    dates: list[date]
