from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List


class DoctorBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    specialization: str = Field(..., min_length=2, max_length=100)
    email: Optional[str] = Field(None, max_length=200)


class DoctorCreate(DoctorBase):
    is_active: bool = True
    rating: float = Field(0.0, ge=0, le=5)

    @classmethod
    def seed_records(
        cls,
        template: dict,
        records: int,
        start_index: int = 0,
    ) -> List["DoctorCreate"]:
        specializations = template.get("specializations") or [template["specialization"]]
        return [
            cls(
                name=f"{template['name']} {i}",
                specialization=specializations[i % len(specializations)],
                email=f"doctor{i}@{template.get('email_domain', 'example.com')}",
                rating=template.get("rating", 0.0),
            )
            for i in range(start_index, start_index + records)
        ]


class DoctorStatusUpdate(BaseModel):
    is_active: bool


class DoctorResponse(DoctorBase):
    model_config = ConfigDict(from_attributes=True)

    doctor_id: str
    doctor_code: str
    is_active: bool
    rating: float
    created_at: datetime
