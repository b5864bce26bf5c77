# scripts/db/seed_db.py
import csv
from pathlib import Path
from typing import Any
from pydantic import BaseModel

from clinic.db import DbManager
from clinic.db.models import Doctor
from clinic.db.schemas import DoctorCreate, WeeklySchedule
from clinic.services.v1 import ScheduleService
from common import get_app_logger

logger = get_app_logger(__name__)


def write_records_to_csv(filename: str, records: list[BaseModel]):
    """Write Pydantic schema records to CSV."""
    if not records:
        return

    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = list(records[0].model_dump(mode="json").keys())

    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for record in records:
            writer.writerow(record.model_dump(mode="json"))


async def seed_db(
    db_manager: DbManager,
    data_template: dict[str, dict[str, Any]],
    records: int,
    start_index: int = 0,
    export_csv: bool = False,
    csv_dir: str = "data/seed",
) -> list[Doctor]:
    """
    Seed doctors and, when the template has a "schedule" entry, give each
    of them that weekly schedule.

    Args:
        db_manager: Initialized DbManager instance
        data_template: {"doctors": ..., "schedule": ...} (see data_template.py)
        records: Number of doctors to generate
        start_index: Starting index for generated names and emails
        export_csv: Whether to export generated doctors to CSV
        csv_dir: Directory to save CSV files

    Returns:
        The inserted Doctor rows
    """
    if "doctors" not in data_template:
        raise ValueError("data_template needs a 'doctors' entry")

    doctor_records = DoctorCreate.seed_records(
        data_template["doctors"], records, start_index
    )
    if export_csv:
        write_records_to_csv(str(Path(csv_dir) / "doctors.csv"), doctor_records)

    schedule = None
    if "schedule" in data_template:
        schedule = WeeklySchedule.model_validate(data_template["schedule"])

    async with db_manager.session() as session:
        doctors = [Doctor(**record.model_dump()) for record in doctor_records]
        session.add_all(doctors)
        await session.flush()

        if schedule is not None:
            schedules = ScheduleService(session)
            for doctor in doctors:
                await schedules.set_weekly_schedule(doctor.doctor_id, schedule)

    logger.info(
        "Seeded doctors",
        doctors=len(doctors),
        with_schedule=schedule is not None,
    )
    return doctors


__all__ = ["seed_db", "write_records_to_csv"]
