from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from clinic.db import get_db
from clinic.db.schemas import (
    ScheduleExceptionCreate,
    ScheduleExceptionResponse,
    WeeklySchedule,
)
from clinic.services.v1 import Actor, ScheduleService
from .deps import get_actor, require_doctor_or_admin

schedule_router = APIRouter(
    prefix="/doctors/{doctor_id}",
    tags=["Schedules"],
)


@schedule_router.get(
    "/schedule",
    response_model=WeeklySchedule,
    summary="Weekly schedule template",
)
async def get_schedule(doctor_id: str, db: AsyncSession = Depends(get_db)):
    return await ScheduleService(db).get_weekly_schedule(doctor_id)


@schedule_router.put(
    "/schedule",
    response_model=WeeklySchedule,
    summary="Replace the weekly schedule",
    description="""
    Full replace. Weekdays missing from `days` are saved as unavailable.
    Existing bookings are not touched.
    """,
    responses={400: {"description": "Invalid or overlapping time slots"}},
)
async def put_schedule(
    doctor_id: str,
    payload: WeeklySchedule,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_doctor_or_admin(actor, doctor_id)
    return await ScheduleService(db).set_weekly_schedule(doctor_id, payload)


@schedule_router.get(
    "/exceptions",
    response_model=list[ScheduleExceptionResponse],
    summary="Date exceptions in a range",
)
async def list_exceptions(
    doctor_id: str,
    start: date = Query(...),
    end: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    return await ScheduleService(db).get_exceptions(doctor_id, start, end)


@schedule_router.put(
    "/exceptions/{exception_date}",
    response_model=ScheduleExceptionResponse,
    summary="Block a date or give it custom slots",
)
async def put_exception(
    doctor_id: str,
    exception_date: date,
    payload: ScheduleExceptionCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_doctor_or_admin(actor, doctor_id)
    return await ScheduleService(db).upsert_exception(
        doctor_id, exception_date, payload
    )


@schedule_router.delete(
    "/exceptions/{exception_date}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a date exception",
    responses={404: {"description": "No exception on that date"}},
)
async def delete_exception(
    doctor_id: str,
    exception_date: date,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_doctor_or_admin(actor, doctor_id)
    await ScheduleService(db).remove_exception(doctor_id, exception_date)


__all__ = ["schedule_router"]
