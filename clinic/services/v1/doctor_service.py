from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from common import NotFoundError, get_app_logger
from clinic.db.models import Doctor
from clinic.db.schemas import DoctorCreate

logger = get_app_logger(__name__)


class DoctorService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_doctor(self, data: DoctorCreate) -> Doctor:
        doctor = Doctor(**data.model_dump())
        self.db.add(doctor)
        await self.db.flush()
        logger.info(
            "Doctor created",
            doctor_id=doctor.doctor_id,
            specialization=doctor.specialization,
        )
        return doctor

    async def list_doctors(
        self,
        active_only: bool = False,
        specialization: Optional[str] = None,
    ) -> list[Doctor]:
        """
        Doctors ordered by name. The specialization filter is a
        case-insensitive exact match.
        """
        query = select(Doctor)
        if active_only:
            query = query.where(Doctor.is_active.is_(True))
        if specialization:
            query = query.where(Doctor.specialization.ilike(specialization))
        query = query.order_by(Doctor.name).execution_options(
            logging_token="DoctorService.list_doctors"
        )
        return list((await self.db.scalars(query)).all())

    async def get_doctor(self, doctor_id: str) -> Doctor:
        doctor = await self.db.get(Doctor, doctor_id)
        if doctor is None:
            raise NotFoundError(f"Doctor {doctor_id} not found")
        return doctor

    async def set_active(self, doctor_id: str, is_active: bool) -> Doctor:
        doctor = await self.get_doctor(doctor_id)
        doctor.is_active = is_active
        await self.db.flush()
        logger.info("Doctor status changed", doctor_id=doctor_id, is_active=is_active)
        return doctor


__all__ = ["DoctorService"]
