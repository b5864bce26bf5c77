import os
import tempfile
from datetime import time

_TEST_DIR = tempfile.mkdtemp(prefix="clinic-booking-tests-")

# Must be set before anything imports main (which initializes config)
os.environ.update(
    {
        "APP_TITLE": "Clinic Booking (tests)",
        "APP_VERSION": "1.0.0",
        "ENVIRONMENT": "development",
        "LOG_LEVEL": "WARNING",
        "LOG_BACKENDS": "file",
        "LOG_DIR": os.path.join(_TEST_DIR, "logs"),
        "DB_DRIVER": "aiosqlite",
        "DB_NAME": os.path.join(_TEST_DIR, "app.db"),
        "DB_POOL_SIZE": "5",
        "DB_MAX_OVERFLOW": "10",
        "DB_POOL_TIMEOUT": "30",
        "DB_POOL_RECYCLE": "3600",
        "SLOW_QUERY_THRESHOLD": "500",
    }
)

import pytest  # noqa: E402
from common.config import initialize_config, is_config_initialized  # noqa: E402
from clinic.db import DbManager  # noqa: E402
from clinic.db.models import DbBaseModel, Doctor  # noqa: E402
from clinic.services.v1 import AvailabilityService, ScheduleService  # noqa: E402
from tests.factories import add_doctor, fixed_today, monday_schedule  # noqa: E402

if not is_config_initialized():
    initialize_config()


@pytest.fixture
async def db_manager(tmp_path):
    manager = DbManager(
        f"sqlite+aiosqlite:///{tmp_path / 'clinic.db'}",
        pool_size=10,
        connect_args={"timeout": 30},
    )
    async with manager.engine.begin() as conn:
        await conn.run_sync(DbBaseModel.metadata.create_all)
    yield manager
    await manager.dispose()


@pytest.fixture
async def session(db_manager):
    """A session that is never committed; closing it rolls everything back."""
    s = db_manager.session_maker()
    try:
        yield s
    finally:
        await s.close()


@pytest.fixture
def availability(session):
    return AvailabilityService(session, today=fixed_today)


@pytest.fixture
async def doctor(session) -> Doctor:
    """Active doctor working Mondays 09:00-10:00 (slots 09:00 and 09:30)."""
    d1 = await add_doctor(session)
    await ScheduleService(session).set_weekly_schedule(
        d1.doctor_id, monday_schedule((time(9, 0), time(10, 0)))
    )
    return d1
