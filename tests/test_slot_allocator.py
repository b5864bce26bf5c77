import asyncio
from datetime import time, timedelta
import pytest
from common import NotFoundError, SlotConflictError, ValidationError
from clinic.db.models import BookingStatus
from clinic.services.v1 import (
    AvailabilityService,
    BookingService,
    ScheduleService,
    SlotAllocator,
)
from tests.factories import TODAY, add_doctor, fixed_today, make_draft, monday_schedule

NEXT_MONDAY = TODAY + timedelta(days=7)


def allocator(session):
    return SlotAllocator(session, AvailabilityService(session, today=fixed_today))


async def test_reserve_then_conflict(session, doctor):
    """Monday 09:00/09:30 doctor: second reservation of 09:00 conflicts."""
    service = allocator(session)

    booking_id = await service.reserve(
        doctor.doctor_id, NEXT_MONDAY, time(9, 0), make_draft("P1")
    )
    booking = await BookingService(session).get(booking_id)
    assert booking.status == BookingStatus.PENDING

    with pytest.raises(SlotConflictError):
        await service.reserve(
            doctor.doctor_id, NEXT_MONDAY, time(9, 0), make_draft("P2")
        )

    # The resolver still lists the taken slot
    assert await service.availability.resolve_slots(
        doctor.doctor_id, NEXT_MONDAY
    ) == [time(9, 0), time(9, 30)]


async def test_reserve_snapshots_doctor_and_slot(session, doctor):
    draft = make_draft(
        "P1",
        doctor_id="someone-else",
        doctor_name="Wrong Name",
        specialization="Wrong",
    )
    booking_id = await allocator(session).reserve(
        doctor.doctor_id, NEXT_MONDAY, time(9, 30), draft
    )
    booking = await BookingService(session).get(booking_id)

    assert booking.doctor_id == doctor.doctor_id
    assert booking.doctor_name == doctor.name
    assert booking.specialization == doctor.specialization
    assert (booking.booking_date, booking.booking_time) == (NEXT_MONDAY, time(9, 30))


async def test_reserve_unknown_or_inactive_doctor(session):
    with pytest.raises(NotFoundError):
        await allocator(session).reserve(
            "missing", NEXT_MONDAY, time(9, 0), make_draft()
        )

    inactive = await add_doctor(session, is_active=False)
    await ScheduleService(session).set_weekly_schedule(
        inactive.doctor_id, monday_schedule((time(9, 0), time(10, 0)))
    )
    with pytest.raises(NotFoundError):
        await allocator(session).reserve(
            inactive.doctor_id, NEXT_MONDAY, time(9, 0), make_draft()
        )


@pytest.mark.parametrize(
    "on_date, at_time",
    [
        (NEXT_MONDAY, time(9, 15)),  # not on the 30 minute grid
        (NEXT_MONDAY, time(10, 0)),  # end of the range
        (NEXT_MONDAY + timedelta(days=1), time(9, 0)),  # day off
        (TODAY - timedelta(days=7), time(9, 0)),  # past
        (TODAY + timedelta(days=35), time(9, 0)),  # beyond the horizon
    ],
)
async def test_reserve_outside_resolved_slots(session, doctor, on_date, at_time):
    with pytest.raises(ValidationError):
        await allocator(session).reserve(
            doctor.doctor_id, on_date, at_time, make_draft()
        )


async def test_reserve_requires_patient_fields(session, doctor):
    with pytest.raises(ValidationError) as exc:
        await allocator(session).reserve(
            doctor.doctor_id, NEXT_MONDAY, time(9, 0), make_draft(patient_name="")
        )
    assert exc.value.field == "patient_name"


async def test_incomplete_draft_on_taken_slot_is_a_validation_error(session, doctor):
    service = allocator(session)
    await service.reserve(doctor.doctor_id, NEXT_MONDAY, time(9, 0), make_draft("P1"))

    with pytest.raises(ValidationError) as exc:
        await service.reserve(
            doctor.doctor_id, NEXT_MONDAY, time(9, 0), make_draft("P2", health_issue=" ")
        )
    assert exc.value.field == "health_issue"


async def test_concurrent_reservations_exactly_one_wins(db_manager):
    async with db_manager.session() as session:
        doctor = await add_doctor(session)
        await ScheduleService(session).set_weekly_schedule(
            doctor.doctor_id, monday_schedule((time(9, 0), time(10, 0)))
        )

    async def attempt(patient_id: str) -> str:
        async with db_manager.session() as session:
            return await allocator(session).reserve(
                doctor.doctor_id, NEXT_MONDAY, time(9, 0), make_draft(patient_id)
            )

    attempts = 5
    results = await asyncio.gather(
        *(attempt(f"P{i}") for i in range(attempts)), return_exceptions=True
    )

    winners = [r for r in results if isinstance(r, str)]
    conflicts = [r for r in results if isinstance(r, SlotConflictError)]
    assert len(winners) == 1
    assert len(conflicts) == attempts - 1

    async with db_manager.session() as session:
        active = await BookingService(session).find_active_in_slot(
            doctor.doctor_id, NEXT_MONDAY, time(9, 0)
        )
    assert [b.booking_id for b in active] == winners


async def test_slot_reusable_after_cancellation(db_manager):
    async with db_manager.session() as session:
        doctor = await add_doctor(session)
        await ScheduleService(session).set_weekly_schedule(
            doctor.doctor_id, monday_schedule((time(9, 0), time(10, 0)))
        )
        first = await allocator(session).reserve(
            doctor.doctor_id, NEXT_MONDAY, time(9, 0), make_draft("P1")
        )

    async with db_manager.session() as session:
        await BookingService(session).update_status(first, BookingStatus.CANCELLED)

    async with db_manager.session() as session:
        second = await allocator(session).reserve(
            doctor.doctor_id, NEXT_MONDAY, time(9, 0), make_draft("P2")
        )
    assert second != first
