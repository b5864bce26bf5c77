from datetime import date, time
import pytest
from common import NotFoundError, ValidationError
from clinic.db.models import DayOfWeek, ExceptionKind
from clinic.db.schemas import (
    DaySchedule,
    ScheduleExceptionCreate,
    TimeSlotTemplate,
    WeeklySchedule,
)
from clinic.services.v1 import ScheduleService
from tests.factories import add_doctor, monday_schedule


async def test_unsaved_schedule_defaults_to_no_availability(session):
    doctor = await add_doctor(session)
    schedule = await ScheduleService(session).get_weekly_schedule(doctor.doctor_id)

    assert [d.day for d in schedule.days] == list(DayOfWeek)
    assert all(not d.is_available and not d.time_slots for d in schedule.days)


async def test_set_weekly_schedule_replaces_previous(session):
    doctor = await add_doctor(session)
    service = ScheduleService(session)

    await service.set_weekly_schedule(
        doctor.doctor_id, monday_schedule((time(9, 0), time(12, 0)))
    )
    saved = await service.set_weekly_schedule(
        doctor.doctor_id,
        WeeklySchedule(
            days=[
                DaySchedule(
                    day=DayOfWeek.TUESDAY,
                    is_available=True,
                    time_slots=[
                        TimeSlotTemplate(start=time(14, 0), end=time(16, 0)),
                        TimeSlotTemplate(start=time(10, 0), end=time(11, 0)),
                    ],
                )
            ]
        ),
    )

    assert not saved.for_day(DayOfWeek.MONDAY).is_available
    tuesday = saved.for_day(DayOfWeek.TUESDAY)
    assert tuesday.is_available
    assert [s.start for s in tuesday.time_slots] == [time(10, 0), time(14, 0)]


async def test_available_day_without_slots_is_allowed(session):
    doctor = await add_doctor(session)
    saved = await ScheduleService(session).set_weekly_schedule(
        doctor.doctor_id,
        WeeklySchedule(days=[DaySchedule(day=DayOfWeek.FRIDAY, is_available=True)]),
    )
    assert saved.for_day(DayOfWeek.FRIDAY).is_available
    assert saved.for_day(DayOfWeek.FRIDAY).time_slots == []


@pytest.mark.parametrize(
    "day",
    [
        DaySchedule(
            day=DayOfWeek.MONDAY,
            is_available=False,
            time_slots=[TimeSlotTemplate(start=time(9, 0), end=time(10, 0))],
        ),
        DaySchedule(
            day=DayOfWeek.MONDAY,
            is_available=True,
            time_slots=[TimeSlotTemplate(start=time(10, 0), end=time(9, 0))],
        ),
        DaySchedule(
            day=DayOfWeek.MONDAY,
            is_available=True,
            time_slots=[
                TimeSlotTemplate(start=time(9, 0), end=time(11, 0)),
                TimeSlotTemplate(start=time(10, 30), end=time(12, 0)),
            ],
        ),
    ],
    ids=["slots-on-unavailable-day", "start-after-end", "overlap"],
)
async def test_invalid_weekly_schedule_is_rejected(session, day):
    doctor = await add_doctor(session)
    with pytest.raises(ValidationError):
        await ScheduleService(session).set_weekly_schedule(
            doctor.doctor_id, WeeklySchedule(days=[day])
        )


async def test_duplicate_weekday_is_rejected(session):
    doctor = await add_doctor(session)
    day = DaySchedule(day=DayOfWeek.MONDAY, is_available=True)
    with pytest.raises(ValidationError):
        await ScheduleService(session).set_weekly_schedule(
            doctor.doctor_id, WeeklySchedule(days=[day, day])
        )


async def test_schedule_for_unknown_doctor(session):
    with pytest.raises(NotFoundError):
        await ScheduleService(session).set_weekly_schedule(
            "missing", monday_schedule((time(9, 0), time(10, 0)))
        )


async def test_upsert_exception_replaces_existing(session):
    doctor = await add_doctor(session)
    service = ScheduleService(session)
    day = date(2030, 1, 14)

    await service.upsert_exception(
        doctor.doctor_id, day, ScheduleExceptionCreate(kind=ExceptionKind.UNAVAILABLE)
    )
    updated = await service.upsert_exception(
        doctor.doctor_id,
        day,
        ScheduleExceptionCreate(
            kind=ExceptionKind.CUSTOM,
            custom_slots=[time(15, 0), time(11, 0), time(11, 0)],
            reason="Afternoon clinic",
        ),
    )

    assert updated.kind == ExceptionKind.CUSTOM
    assert updated.custom_slots == ["11:00", "15:00"]
    assert updated.slot_times == [time(11, 0), time(15, 0)]

    stored = await service.get_exceptions(doctor.doctor_id, day, day)
    assert len(stored) == 1


async def test_custom_exception_needs_slots(session):
    doctor = await add_doctor(session)
    with pytest.raises(ValidationError):
        await ScheduleService(session).upsert_exception(
            doctor.doctor_id,
            date(2030, 1, 14),
            ScheduleExceptionCreate(kind=ExceptionKind.CUSTOM),
        )


async def test_custom_slots_must_be_whole_minutes(session):
    doctor = await add_doctor(session)
    service = ScheduleService(session)
    day = date(2030, 1, 14)

    with pytest.raises(ValidationError) as exc:
        await service.upsert_exception(
            doctor.doctor_id,
            day,
            ScheduleExceptionCreate(
                kind=ExceptionKind.CUSTOM, custom_slots=[time(9, 0, 30), time(9, 0)]
            ),
        )
    assert exc.value.field == "custom_slots"
    assert await service.get_exceptions(doctor.doctor_id, day, day) == []


async def test_unavailable_exception_cannot_carry_slots(session):
    doctor = await add_doctor(session)
    with pytest.raises(ValidationError):
        await ScheduleService(session).upsert_exception(
            doctor.doctor_id,
            date(2030, 1, 14),
            ScheduleExceptionCreate(
                kind=ExceptionKind.UNAVAILABLE, custom_slots=[time(9, 0)]
            ),
        )


async def test_get_exceptions_is_ordered_and_inclusive(session):
    doctor = await add_doctor(session)
    service = ScheduleService(session)
    blocked = ScheduleExceptionCreate(kind=ExceptionKind.UNAVAILABLE)
    for day in (date(2030, 1, 20), date(2030, 1, 10), date(2030, 1, 31)):
        await service.upsert_exception(doctor.doctor_id, day, blocked)

    found = await service.get_exceptions(
        doctor.doctor_id, date(2030, 1, 10), date(2030, 1, 20)
    )
    assert [e.exception_date for e in found] == [date(2030, 1, 10), date(2030, 1, 20)]


async def test_remove_exception(session):
    doctor = await add_doctor(session)
    service = ScheduleService(session)
    day = date(2030, 1, 14)
    await service.upsert_exception(
        doctor.doctor_id, day, ScheduleExceptionCreate(kind=ExceptionKind.UNAVAILABLE)
    )

    await service.remove_exception(doctor.doctor_id, day)

    assert await service.get_exception(doctor.doctor_id, day) is None
    with pytest.raises(NotFoundError):
        await service.remove_exception(doctor.doctor_id, day)
