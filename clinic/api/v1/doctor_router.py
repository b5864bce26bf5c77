from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from clinic.db import get_db
from clinic.db.schemas import (
    BookableDatesResponse,
    BookingResponse,
    DoctorCreate,
    DoctorResponse,
    DoctorStatusUpdate,
    SlotsResponse,
)
from clinic.services.v1 import (
    Actor,
    AvailabilityService,
    BookingService,
    DoctorService,
    Role,
)
from .deps import (
    get_actor,
    get_availability_service,
    require_doctor_or_admin,
    require_role,
)

doctor_router = APIRouter(
    prefix="/doctors",
    tags=["Doctors"],
)


@doctor_router.post(
    "",
    response_model=DoctorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a doctor",
    responses={403: {"description": "Caller is not an admin"}},
)
async def create_doctor(
    payload: DoctorCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_role(actor, Role.ADMIN)
    return await DoctorService(db).create_doctor(payload)


@doctor_router.get(
    "",
    response_model=list[DoctorResponse],
    summary="List doctors",
)
async def list_doctors(
    active_only: bool = Query(False),
    specialization: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await DoctorService(db).list_doctors(
        active_only=active_only, specialization=specialization
    )


@doctor_router.get(
    "/{doctor_id}",
    response_model=DoctorResponse,
    summary="Get doctor details",
    responses={404: {"description": "Doctor not found"}},
)
async def get_doctor(doctor_id: str, db: AsyncSession = Depends(get_db)):
    return await DoctorService(db).get_doctor(doctor_id)


@doctor_router.patch(
    "/{doctor_id}/status",
    response_model=DoctorResponse,
    summary="Activate or deactivate a doctor",
    description="""
    Inactive doctors stay listed but resolve no bookable slots.
    Existing bookings are left untouched.
    """,
)
async def set_doctor_status(
    doctor_id: str,
    payload: DoctorStatusUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_doctor_or_admin(actor, doctor_id)
    return await DoctorService(db).set_active(doctor_id, payload.is_active)


@doctor_router.get(
    "/{doctor_id}/slots",
    response_model=SlotsResponse,
    summary="Resolve slots for a date",
    description="""
    `slots` is the doctor's schedule for the date after exceptions are
    applied; `available` drops the ones already held by a pending or
    confirmed booking.

    **Database Impact:** - Expected Query Count: 4
    """,
    responses={404: {"description": "Doctor not found or inactive"}},
)
async def get_slots(
    doctor_id: str,
    on_date: date = Query(..., alias="date"),
    availability: AvailabilityService = Depends(get_availability_service),
):
    available = await availability.find_available_slots(doctor_id, on_date)
    slots = await availability.resolve_slots(doctor_id, on_date)
    return SlotsResponse(
        doctor_id=doctor_id, date=on_date, slots=slots, available=available
    )


@doctor_router.get(
    "/{doctor_id}/bookable-dates",
    response_model=BookableDatesResponse,
    summary="Dates inside the booking horizon with at least one slot",
)
async def get_bookable_dates(
    doctor_id: str,
    availability: AvailabilityService = Depends(get_availability_service),
):
    dates = await availability.bookable_dates(doctor_id)
    return BookableDatesResponse(doctor_id=doctor_id, dates=dates)


@doctor_router.get(
    "/{doctor_id}/bookings",
    response_model=list[BookingResponse],
    summary="A doctor's appointment queue",
)
async def get_doctor_bookings(
    doctor_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_doctor_or_admin(actor, doctor_id)
    return await BookingService(db).find_by_doctor(doctor_id)


__all__ = ["doctor_router"]
