# seed_db.py
"""
Insert demo doctors, by default each with the Monday-Friday schedule
from scripts/db/data_template.py, so slots resolve right away.

    python seed_db.py --records 5
    python seed_db.py --records 50 --start-index 100 --export-csv --csv-dir data/seed
    python seed_db.py --records 5 --no-schedule

Needs the same environment as the API and an up-to-date schema
(alembic upgrade head).
"""

import argparse
import asyncio
import sys
from dotenv import load_dotenv
from clinic.db import DbManager
from common.api_error import ConfigurationError
from common.config import DatabaseConfig, get_config, initialize_config
from scripts.db import DEFAULT_DATA_TEMPLATE, seed_db


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed demo doctors and schedules")
    parser.add_argument("--records", type=int, required=True, help="Doctors to insert")
    parser.add_argument(
        "--start-index", type=int, default=0, help="Offset for generated names"
    )
    parser.add_argument(
        "--no-schedule", action="store_true", help="Skip the weekly schedule"
    )
    parser.add_argument(
        "--export-csv", action="store_true", help="Also write doctors.csv"
    )
    parser.add_argument("--csv-dir", default="data/seed", help="Where doctors.csv goes")
    return parser.parse_args(argv)


async def run(database: DatabaseConfig, args: argparse.Namespace) -> None:
    template = dict(DEFAULT_DATA_TEMPLATE)
    if args.no_schedule:
        template.pop("schedule", None)

    db_manager = DbManager.from_config(database)
    await db_manager.verify_connection()
    try:
        doctors = await seed_db(
            db_manager=db_manager,
            data_template=template,
            records=args.records,
            start_index=args.start_index,
            export_csv=args.export_csv,
            csv_dir=args.csv_dir,
        )
    finally:
        await db_manager.dispose()

    for doctor in doctors:
        print(f"{doctor.doctor_id}  {doctor.name}  ({doctor.specialization})")


def main(argv=None) -> None:
    args = parse_args(argv)
    load_dotenv()
    try:
        initialize_config()
    except ConfigurationError as e:
        print(f"FATAL: Configuration error:\n{e}")
        sys.exit(1)

    database = get_config().database
    if database is None:
        print("FATAL: Database configuration required (set DB_DRIVER and friends)")
        sys.exit(1)
    asyncio.run(run(database, args))


if __name__ == "__main__":
    main()
