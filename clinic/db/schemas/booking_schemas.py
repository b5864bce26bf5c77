from pydantic import BaseModel, Field, ConfigDict
from datetime import date, datetime, time
from typing import Optional
from ..models import BookingStatus

# Order matters: the first missing one is reported
REQUIRED_DRAFT_FIELDS = (
    "patient_id",
    "patient_name",
    "patient_phone",
    "patient_gender",
    "patient_age",
    "doctor_id",
    "doctor_name",
    "specialization",
    "booking_date",
    "booking_time",
    "health_issue",
)


class BookingDraft(BaseModel):
    """
    Everything needed to create a booking. Fields are optional at the type
    level so the booking service can report exactly which one is missing.
    """

    patient_id: Optional[str] = None
    patient_name: Optional[str] = Field(None, max_length=100)
    patient_email: Optional[str] = Field(None, max_length=200)
    patient_phone: Optional[str] = Field(None, max_length=30)
    patient_gender: Optional[str] = Field(None, max_length=20)
    patient_age: Optional[int] = Field(None, ge=0, le=150)
    doctor_id: Optional[str] = None
    doctor_name: Optional[str] = Field(None, max_length=100)
    specialization: Optional[str] = Field(None, max_length=100)
    booking_date: Optional[date] = None
    booking_time: Optional[time] = None
    health_issue: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)

    def missing_fields(self) -> list[str]:
        missing = []
        for field in REQUIRED_DRAFT_FIELDS:
            value = getattr(self, field)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(field)
        return missing


class BookingReserveRequest(BookingDraft):
    doctor_id: str
    booking_date: date
    booking_time: time


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    notes: Optional[str] = Field(None, max_length=1000)


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: str
    patient_id: str
    patient_name: str
    patient_email: Optional[str] = None
    patient_phone: str
    patient_gender: str
    patient_age: int
    doctor_id: str
    doctor_name: str
    specialization: str
    booking_date: date
    booking_time: time
    health_issue: str
    status: BookingStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BookingCreatedResponse(BaseModel):
    booking_id: str
    status: BookingStatus


class BookingSummary(BaseModel):
    total: int
    by_status: dict[BookingStatus, int]
