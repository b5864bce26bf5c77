"""
Easily extendible template file for data templates
- Add new templates
- Compose them into DEFAULT_DATA_TEMPLATE

    Example: Seed only doctors, no weekly schedule
        await seed_db(db_manager, {"doctors": DOCTOR_DATA_TEMPLATE}, records=10)

    Example: Doctors with the default weekday schedule
        await seed_db(db_manager, DEFAULT_DATA_TEMPLATE, records=10)
"""

from typing import Any

# Individual templates
DOCTOR_DATA_TEMPLATE: dict[str, Any] = {
    "name": "Dr. Smith",
    # Assigned round-robin across generated doctors
    "specializations": ["Cardiologist", "Dermatologist", "General Physician"],
    "email_domain": "clinic.example.com",
    "rating": 4.5,
}

# Monday to Friday, morning and afternoon blocks; weekends off
SCHEDULE_DATA_TEMPLATE: dict[str, Any] = {
    "days": [
        {
            "day": day,
            "is_available": True,
            "time_slots": [
                {"start": "09:00", "end": "12:00"},
                {"start": "14:00", "end": "17:00"},
            ],
        }
        for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
    ],
}

# Combined default template
DEFAULT_DATA_TEMPLATE: dict[str, dict[str, Any]] = {
    "doctors": DOCTOR_DATA_TEMPLATE,
    "schedule": SCHEDULE_DATA_TEMPLATE,
}

__all__ = [
    "DEFAULT_DATA_TEMPLATE",
    "DOCTOR_DATA_TEMPLATE",
    "SCHEDULE_DATA_TEMPLATE",
]
