from datetime import date, time, timezone
import pytest
from sqlalchemy.exc import IntegrityError
from common import DatabaseError, NotFoundError, SlotConflictError, ValidationError
from clinic.db.models import ACTIVE_STATUSES, BookingStatus
from clinic.services.v1 import BookingService
from tests.factories import add_doctor, make_draft


def full_draft(
    doctor, patient_id="p-1", on_date=date(2030, 1, 14), at=time(9, 0), **overrides
):
    return make_draft(
        patient_id,
        **overrides,
        doctor_id=doctor.doctor_id,
        doctor_name=doctor.name,
        specialization=doctor.specialization,
        booking_date=on_date,
        booking_time=at,
    )


async def test_create_starts_pending(session):
    doctor = await add_doctor(session)
    service = BookingService(session)

    booking_id = await service.create(full_draft(doctor))
    booking = await service.get(booking_id)

    assert booking.status == BookingStatus.PENDING
    assert booking.doctor_name == doctor.name
    assert booking.patient_id == "p-1"


async def test_create_reports_first_missing_field(session):
    doctor = await add_doctor(session)
    draft = full_draft(doctor).model_copy(
        update={"patient_phone": "  ", "health_issue": None}
    )
    with pytest.raises(ValidationError) as exc:
        await BookingService(session).create(draft)
    assert exc.value.field == "patient_phone"


async def test_duplicate_active_slot_raises_conflict(db_manager):
    async with db_manager.session() as session:
        doctor = await add_doctor(session)
        await BookingService(session).create(full_draft(doctor))

    with pytest.raises(SlotConflictError):
        async with db_manager.session() as session:
            await BookingService(session).create(full_draft(doctor, patient_id="p-2"))

    async with db_manager.session() as session:
        held = await BookingService(session).find_by_doctor_date_time(
            doctor.doctor_id, date(2030, 1, 14), time(9, 0)
        )
    assert [b.patient_id for b in held] == ["p-1"]


async def test_terminal_booking_frees_the_slot(session):
    doctor = await add_doctor(session)
    service = BookingService(session)
    first = await service.create(full_draft(doctor))
    await service.update_status(first, BookingStatus.CANCELLED)

    second = await service.create(full_draft(doctor, patient_id="p-2"))

    all_rows = await service.find_by_doctor_date_time(
        doctor.doctor_id, date(2030, 1, 14), time(9, 0)
    )
    active = await service.find_by_doctor_date_time(
        doctor.doctor_id, date(2030, 1, 14), time(9, 0), statuses=ACTIVE_STATUSES
    )
    assert len(all_rows) == 2
    assert [b.booking_id for b in active] == [second]


async def test_finders_are_ordered_by_date_then_time(session):
    doctor = await add_doctor(session)
    service = BookingService(session)
    await service.create(full_draft(doctor, on_date=date(2030, 1, 21), at=time(9, 0)))
    await service.create(full_draft(doctor, on_date=date(2030, 1, 14), at=time(9, 30)))
    await service.create(full_draft(doctor, on_date=date(2030, 1, 14), at=time(9, 0)))
    await service.create(
        full_draft(doctor, patient_id="p-2", on_date=date(2030, 2, 4), at=time(9, 0))
    )

    mine = await service.find_by_patient("p-1")
    assert [(b.booking_date, b.booking_time) for b in mine] == [
        (date(2030, 1, 14), time(9, 0)),
        (date(2030, 1, 14), time(9, 30)),
        (date(2030, 1, 21), time(9, 0)),
    ]
    assert len(await service.find_by_doctor(doctor.doctor_id)) == 4
    assert len(await service.find_all()) == 4

    january = await service.find_by_date_range(date(2030, 1, 14), date(2030, 1, 21))
    assert {b.patient_id for b in january} == {"p-1"}
    assert len(january) == 3


async def test_find_by_date_range_rejects_inverted_range(session):
    with pytest.raises(ValidationError):
        await BookingService(session).find_by_date_range(
            date(2030, 2, 1), date(2030, 1, 1)
        )


async def test_update_status_keeps_notes_unless_given(session):
    doctor = await add_doctor(session)
    service = BookingService(session)
    booking_id = await service.create(full_draft(doctor, notes="Bring reports"))
    created = await service.get(booking_id)
    created_at, first_update = created.created_at, created.updated_at

    booking = await service.update_status(booking_id, BookingStatus.CONFIRMED)
    assert booking.notes == "Bring reports"
    assert booking.updated_at >= first_update
    assert booking.created_at == created_at

    booking = await service.update_status(
        booking_id, BookingStatus.COMPLETED, notes="Follow up in 2 weeks"
    )
    assert booking.notes == "Follow up in 2 weeks"
    assert booking.booking_id == booking_id


async def test_timestamps_read_back_as_utc(session):
    doctor = await add_doctor(session)
    service = BookingService(session)
    booking_id = await service.create(full_draft(doctor))

    # Force a round trip so the values come from the database row
    session.expire_all()
    stored = await service.get(booking_id)
    assert stored.created_at.tzinfo == timezone.utc
    assert stored.updated_at.tzinfo == timezone.utc

    first_update = stored.updated_at
    updated = await service.update_status(booking_id, BookingStatus.CONFIRMED)
    assert updated.updated_at >= first_update

    session.expire_all()
    reloaded = await service.get(booking_id)
    assert reloaded.updated_at.tzinfo == timezone.utc
    assert reloaded.updated_at >= reloaded.created_at


async def test_get_and_delete_unknown_booking(session):
    service = BookingService(session)
    assert await service.find_by_id("missing") is None
    with pytest.raises(NotFoundError):
        await service.get("missing")
    with pytest.raises(NotFoundError):
        await service.delete("missing")


async def test_create_for_unknown_doctor(session):
    doctor = await add_doctor(session)
    draft = full_draft(doctor).model_copy(update={"doctor_id": "no-such-doctor"})
    with pytest.raises(NotFoundError):
        await BookingService(session).create(draft)


async def test_delete(session):
    doctor = await add_doctor(session)
    service = BookingService(session)
    booking_id = await service.create(full_draft(doctor))

    await service.delete(booking_id)

    assert await service.find_by_id(booking_id) is None


async def test_count_by_status(session):
    doctor = await add_doctor(session)
    service = BookingService(session)
    first = await service.create(full_draft(doctor, at=time(9, 0)))
    await service.create(full_draft(doctor, at=time(9, 30)))
    await service.update_status(first, BookingStatus.CONFIRMED)

    counts = await service.count_by_status()

    assert counts[BookingStatus.PENDING] == 1
    assert counts[BookingStatus.CONFIRMED] == 1
    assert counts[BookingStatus.COMPLETED] == 0
    assert set(counts) == set(BookingStatus)


class _DriverError(Exception):
    def __init__(self, message, sqlstate):
        super().__init__(message)
        self.sqlstate = sqlstate


@pytest.mark.parametrize(
    "sqlstate, message, expected",
    [
        ("23505", 'insert violates foreign key "fk" and unique "uq"', SlotConflictError),
        ("23503", "constraint violated", NotFoundError),
        ("23514", 'violates unique check "ck_age"', DatabaseError),
    ],
)
async def test_create_classifies_postgres_sqlstate(
    session, monkeypatch, sqlstate, message, expected
):
    doctor = await add_doctor(session)

    async def failing_flush(*args, **kwargs):
        raise IntegrityError("INSERT INTO bookings", {}, _DriverError(message, sqlstate))

    monkeypatch.setattr(session, "flush", failing_flush)
    with pytest.raises(expected):
        await BookingService(session).create(full_draft(doctor))
