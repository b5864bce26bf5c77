from datetime import date, time
from typing import Iterable, Optional
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from common import (
    DatabaseError,
    NotFoundError,
    SlotConflictError,
    ValidationError,
    get_app_logger,
)
from clinic.db.models import ACTIVE_STATUSES, Booking, BookingStatus, utc_now
from clinic.db.schemas import BookingDraft

logger = get_app_logger(__name__)


_SQLSTATE_KINDS = {"23503": "foreign_key", "23505": "unique"}


def _violation_kind(error: IntegrityError) -> str:
    # asyncpg and psycopg expose sqlstate, psycopg2 pgcode; SQLite only a message
    code = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    if code:
        return _SQLSTATE_KINDS.get(code, "other")

    message = str(error.orig).lower()
    if "foreign key" in message:
        return "foreign_key"
    if "unique" in message:
        return "unique"
    return "other"


class BookingService:
    """
    Booking persistence. Applies no lifecycle rules: status changes go
    through BookingLifecycleService, reservations through SlotAllocator.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, draft: BookingDraft) -> str:
        """
        Insert a pending booking and flush it so the active-slot index is
        checked inside the caller's transaction. After a SlotConflictError
        the session must be rolled back (DbManager.session() does this).

        Raises:
            ValidationError: a required field is missing or blank
            SlotConflictError: the slot is already held
            NotFoundError: doctor_id does not reference a doctor
        """
        missing = draft.missing_fields()
        if missing:
            raise ValidationError(f"{missing[0]} is required", field=missing[0])

        booking = Booking(**draft.model_dump(), status=BookingStatus.PENDING)

        self.db.add(booking)
        try:
            await self.db.flush()
        except IntegrityError as e:
            kind = _violation_kind(e)
            if kind == "foreign_key":
                raise NotFoundError(f"Doctor {draft.doctor_id} not found") from e
            if kind == "other":
                raise DatabaseError(f"Booking insert failed: {e.orig}") from e
            logger.warning(
                "Slot conflict on insert",
                doctor_id=draft.doctor_id,
                date=draft.booking_date.isoformat(),
                time=draft.booking_time.isoformat(),
                error=str(e.orig),
            )
            raise SlotConflictError() from e

        return booking.booking_id

    async def find_by_doctor_date_time(
        self,
        doctor_id: str,
        on_date: date,
        at_time: time,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> list[Booking]:
        query = select(Booking).where(
            Booking.doctor_id == doctor_id,
            Booking.booking_date == on_date,
            Booking.booking_time == at_time,
        )
        if statuses is not None:
            query = query.where(Booking.status.in_(list(statuses)))
        query = query.execution_options(
            logging_token="BookingService.find_by_doctor_date_time"
        )
        return list((await self.db.scalars(query)).all())

    async def find_active_in_slot(
        self, doctor_id: str, on_date: date, at_time: time
    ) -> list[Booking]:
        return await self.find_by_doctor_date_time(
            doctor_id, on_date, at_time, statuses=ACTIVE_STATUSES
        )

    async def _find_ordered(self, *criteria, token: str) -> list[Booking]:
        query = (
            select(Booking)
            .where(*criteria)
            .order_by(Booking.booking_date, Booking.booking_time)
            .execution_options(logging_token=token)
        )
        return list((await self.db.scalars(query)).all())

    async def find_by_patient(self, patient_id: str) -> list[Booking]:
        return await self._find_ordered(
            Booking.patient_id == patient_id, token="BookingService.find_by_patient"
        )

    async def find_by_doctor(self, doctor_id: str) -> list[Booking]:
        return await self._find_ordered(
            Booking.doctor_id == doctor_id, token="BookingService.find_by_doctor"
        )

    async def find_all(self) -> list[Booking]:
        return await self._find_ordered(token="BookingService.find_all")

    async def find_by_date_range(self, start_date: date, end_date: date) -> list[Booking]:
        if start_date > end_date:
            raise ValidationError("start date must not be after end date", field="start")
        return await self._find_ordered(
            Booking.booking_date >= start_date,
            Booking.booking_date <= end_date,
            token="BookingService.find_by_date_range",
        )

    async def find_by_id(self, booking_id: str) -> Optional[Booking]:
        return await self.db.get(Booking, booking_id)

    async def get(self, booking_id: str) -> Booking:
        booking = await self.find_by_id(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    async def update_status(
        self,
        booking_id: str,
        new_status: BookingStatus,
        notes: Optional[str] = None,
    ) -> Booking:
        booking = await self.get(booking_id)
        booking.status = new_status
        if notes is not None:
            booking.notes = notes
        # Set explicitly so the timestamp moves even when nothing else changed
        booking.updated_at = utc_now()
        await self.db.flush()
        return booking

    async def delete(self, booking_id: str) -> None:
        booking = await self.get(booking_id)
        await self.db.delete(booking)
        await self.db.flush()
        logger.info("Booking deleted", booking_id=booking_id)

    async def count_by_status(self) -> dict[BookingStatus, int]:
        query = (
            select(Booking.status, func.count())
            .group_by(Booking.status)
            .execution_options(logging_token="BookingService.count_by_status")
        )
        counts = {status: 0 for status in BookingStatus}
        for status, count in (await self.db.execute(query)).all():
            counts[status] = count
        return counts


__all__ = ["BookingService"]
