from datetime import date, time
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from common import NotFoundError, SlotConflictError, ValidationError, get_app_logger
from clinic.db.models import Doctor
from clinic.db.schemas import BookingDraft
from .availability_service import AvailabilityService
from .booking_service import BookingService

logger = get_app_logger(__name__, persist=True)


class SlotAllocator:
    """
    Atomic reservation of one (doctor, date, time) slot.

    The pre-check query only gives a fast, friendly answer. Correctness
    comes from the partial unique index on active bookings: when two
    requests pass the pre-check together, the second flush fails and is
    reported as SlotConflictError. There is no retry.
    """

    def __init__(
        self,
        db: AsyncSession,
        availability: Optional[AvailabilityService] = None,
    ):
        self.db = db
        self.availability = availability or AvailabilityService(db)
        self.bookings = BookingService(db)

    async def reserve(
        self,
        doctor_id: str,
        on_date: date,
        at_time: time,
        draft: BookingDraft,
    ) -> str:
        doctor = await self.db.get(Doctor, doctor_id)
        if doctor is None or not doctor.is_active:
            raise NotFoundError(f"Doctor {doctor_id} not found or inactive")

        slots = await self.availability.resolve_slots(doctor_id, on_date)
        if at_time not in slots:
            raise ValidationError(
                f"{at_time.strftime('%H:%M')} on {on_date.isoformat()} "
                "is not a bookable slot for this doctor",
                field="booking_time",
            )

        # Slot and doctor details always come from the arguments and the doctor row
        draft = draft.model_copy(
            update={
                "doctor_id": doctor_id,
                "doctor_name": doctor.name,
                "specialization": doctor.specialization,
                "booking_date": on_date,
                "booking_time": at_time,
            }
        )
        missing = draft.missing_fields()
        if missing:
            raise ValidationError(f"{missing[0]} is required", field=missing[0])

        log = logger.bind(
            doctor_id=doctor_id,
            date=on_date.isoformat(),
            time=at_time.isoformat(),
            patient_id=draft.patient_id,
        )

        if await self.bookings.find_active_in_slot(doctor_id, on_date, at_time):
            log.info("Slot already held")
            raise SlotConflictError()

        booking_id = await self.bookings.create(draft)
        log.info("Slot reserved", booking_id=booking_id)
        return booking_id


__all__ = ["SlotAllocator"]
