from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from common import PermissionDeniedError, ValidationError
from clinic.db import get_db
from clinic.db.models import BookingStatus
from clinic.db.schemas import (
    BookingCreatedResponse,
    BookingReserveRequest,
    BookingResponse,
    BookingStatusUpdate,
    BookingSummary,
)
from clinic.services.v1 import (
    Actor,
    AvailabilityService,
    BookingLifecycleService,
    BookingService,
    Role,
    SlotAllocator,
)
from .deps import get_actor, get_availability_service, require_role

booking_router = APIRouter(
    prefix="/bookings",
    tags=["Bookings"],
)


@booking_router.post(
    "",
    response_model=BookingCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reserve a slot",
    description="""
    Creates a `pending` booking. Doctor name and specialization are taken
    from the doctor record, not from the payload.

    **Conflicts:** - 409 when another active booking holds the slot,
    including one committed by a concurrent request.
    """,
    responses={
        400: {"description": "Missing field or time not on the schedule"},
        404: {"description": "Doctor not found or inactive"},
        409: {"description": "Slot already booked"},
    },
)
async def reserve_booking(
    payload: BookingReserveRequest,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    availability: AvailabilityService = Depends(get_availability_service),
):
    require_role(actor, Role.PATIENT, Role.ADMIN)
    if actor.role == Role.PATIENT:
        if payload.patient_id and payload.patient_id != actor.actor_id:
            raise PermissionDeniedError("Patients can only book for themselves")
        payload = payload.model_copy(update={"patient_id": actor.actor_id})

    booking_id = await SlotAllocator(db, availability).reserve(
        payload.doctor_id, payload.booking_date, payload.booking_time, payload
    )
    return BookingCreatedResponse(booking_id=booking_id, status=BookingStatus.PENDING)


@booking_router.get(
    "/me",
    response_model=list[BookingResponse],
    summary="The calling patient's bookings",
)
async def my_bookings(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_role(actor, Role.PATIENT)
    return await BookingService(db).find_by_patient(actor.actor_id)


@booking_router.get(
    "",
    response_model=list[BookingResponse],
    summary="All bookings",
    description="Optionally limited to an inclusive `start`..`end` date range.",
)
async def list_bookings(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_role(actor, Role.ADMIN)
    service = BookingService(db)
    if start is None and end is None:
        return await service.find_all()
    if start is None or end is None:
        raise ValidationError("start and end must be given together", field="start")
    return await service.find_by_date_range(start, end)


@booking_router.get(
    "/summary",
    response_model=BookingSummary,
    summary="Booking counts by status",
)
async def booking_summary(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_role(actor, Role.ADMIN)
    counts = await BookingService(db).count_by_status()
    return BookingSummary(total=sum(counts.values()), by_status=counts)


@booking_router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get one booking",
    responses={404: {"description": "Booking not found"}},
)
async def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    booking = await BookingService(db).get(booking_id)
    if not actor.owns(booking):
        raise PermissionDeniedError("Not your booking")
    return booking


@booking_router.patch(
    "/{booking_id}/status",
    response_model=BookingResponse,
    summary="Move a booking through its lifecycle",
    description="""
    pending -> confirmed | rejected | cancelled, confirmed -> completed |
    cancelled. Patients may only cancel their own pending bookings; doctors
    act on their own bookings; admins on any.
    """,
    responses={
        403: {"description": "Transition not allowed for this caller"},
        404: {"description": "Booking not found"},
        409: {"description": "Booking already in a final status"},
    },
)
async def update_booking_status(
    booking_id: str,
    payload: BookingStatusUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await BookingLifecycleService(db).transition(
        booking_id, actor, payload.status, notes=payload.notes
    )


@booking_router.delete(
    "/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a booking",
)
async def delete_booking(
    booking_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_role(actor, Role.ADMIN)
    await BookingService(db).delete(booking_id)


__all__ = ["booking_router"]
