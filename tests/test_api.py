from contextlib import asynccontextmanager
from datetime import timedelta
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession
from clinic.api.v1.deps import get_availability_service
from clinic.db import DbManager, get_db
from clinic.db.models import DbBaseModel
from clinic.services.v1 import AvailabilityService
from server import app
from tests.factories import TODAY, fixed_today

API = "/api/v1"
NEXT_MONDAY = (TODAY + timedelta(days=7)).isoformat()

ADMIN = {"X-Actor-Role": "admin"}


def patient(patient_id="P1"):
    return {"X-Actor-Role": "patient", "X-Actor-Id": patient_id}


def doctor_headers(doctor_id):
    return {"X-Actor-Role": "doctor", "X-Actor-Id": doctor_id}


def _availability_override(db: AsyncSession = Depends(get_db)) -> AvailabilityService:
    return AvailabilityService(db, today=fixed_today)


@pytest.fixture
def client(tmp_path):
    """
    Runs the app against a throwaway SQLite file. The schema comes from
    the models instead of Alembic, so the production lifespan is swapped out.
    """

    @asynccontextmanager
    async def lifespan(app_):
        manager = DbManager(
            f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
            connect_args={"timeout": 30},
        )
        async with manager.engine.begin() as conn:
            await conn.run_sync(DbBaseModel.metadata.create_all)
        app_.state.db_manager = manager
        yield
        await manager.dispose()

    original_lifespan = app.router.lifespan_context
    app.router.lifespan_context = lifespan
    app.dependency_overrides[get_availability_service] = _availability_override
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.router.lifespan_context = original_lifespan
        app.dependency_overrides.clear()


@pytest.fixture
def doctor_id(client):
    response = client.post(
        f"{API}/doctors",
        json={"name": "Dr. John Smith", "specialization": "Cardiologist", "rating": 4.5},
        headers=ADMIN,
    )
    assert response.status_code == 201
    d1 = response.json()["doctor_id"]

    response = client.put(
        f"{API}/doctors/{d1}/schedule",
        json={
            "days": [
                {
                    "day": "monday",
                    "is_available": True,
                    "time_slots": [{"start": "09:00", "end": "10:00"}],
                }
            ]
        },
        headers=doctor_headers(d1),
    )
    assert response.status_code == 200
    return d1


def reserve(client, doctor_id, at="09:00", headers=None):
    return client.post(
        f"{API}/bookings",
        json={
            "doctor_id": doctor_id,
            "booking_date": NEXT_MONDAY,
            "booking_time": at,
            "patient_name": "John Doe",
            "patient_phone": "9876543210",
            "patient_gender": "male",
            "patient_age": 42,
            "health_issue": "Chest pain",
        },
        headers=patient() if headers is None else headers,
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "Healthy"
    assert body["database"]["healthy"] is True


def test_doctor_directory(client, doctor_id):
    listed = client.get(f"{API}/doctors", params={"specialization": "cardiologist"})
    assert [d["doctor_id"] for d in listed.json()] == [doctor_id]

    response = client.patch(
        f"{API}/doctors/{doctor_id}/status",
        json={"is_active": False},
        headers=doctor_headers(doctor_id),
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    assert client.get(f"{API}/doctors", params={"active_only": True}).json() == []
    assert client.get(f"{API}/doctors/{doctor_id}/slots", params={"date": NEXT_MONDAY}).status_code == 404


def test_only_admin_creates_doctors(client):
    response = client.post(
        f"{API}/doctors",
        json={"name": "Dr. Jane Doe", "specialization": "Dermatologist"},
        headers=patient(),
    )
    assert response.status_code == 403
    assert response.json()["error"] == "PERMISSION_DENIED"


def test_actor_headers_are_validated(client, doctor_id):
    assert reserve(client, doctor_id, headers={}).status_code == 403

    response = reserve(client, doctor_id, headers={"X-Actor-Role": "nurse"})
    assert response.status_code == 400
    assert response.json()["field"] == "X-Actor-Role"

    response = reserve(client, doctor_id, headers={"X-Actor-Role": "patient"})
    assert response.status_code == 400


def test_reserve_flow(client, doctor_id):
    slots = client.get(f"{API}/doctors/{doctor_id}/slots", params={"date": NEXT_MONDAY})
    assert slots.json()["slots"] == ["09:00:00", "09:30:00"]
    assert slots.json()["available"] == ["09:00:00", "09:30:00"]

    first = reserve(client, doctor_id)
    assert first.status_code == 201
    assert first.json()["status"] == "pending"

    second = reserve(client, doctor_id, headers=patient("P2"))
    assert second.status_code == 409
    assert second.json()["error"] == "SLOT_CONFLICT"

    slots = client.get(f"{API}/doctors/{doctor_id}/slots", params={"date": NEXT_MONDAY})
    assert slots.json()["slots"] == ["09:00:00", "09:30:00"]
    assert slots.json()["available"] == ["09:30:00"]

    mine = client.get(f"{API}/bookings/me", headers=patient()).json()
    assert [b["booking_id"] for b in mine] == [first.json()["booking_id"]]
    assert mine[0]["doctor_name"] == "Dr. John Smith"
    assert mine[0]["patient_id"] == "P1"


def test_reserve_rejects_unscheduled_time(client, doctor_id):
    response = reserve(client, doctor_id, at="11:00")
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_patient_cannot_book_for_someone_else(client, doctor_id):
    response = client.post(
        f"{API}/bookings",
        json={
            "patient_id": "P2",
            "doctor_id": doctor_id,
            "booking_date": NEXT_MONDAY,
            "booking_time": "09:00",
            "patient_name": "Jane Doe",
            "patient_phone": "9876500000",
            "patient_gender": "female",
            "patient_age": 30,
            "health_issue": "Rash",
        },
        headers=patient("P1"),
    )
    assert response.status_code == 403


def test_lifecycle_over_http(client, doctor_id):
    booking_id = reserve(client, doctor_id).json()["booking_id"]
    url = f"{API}/bookings/{booking_id}/status"

    response = client.patch(url, json={"status": "confirmed"}, headers=patient())
    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN_TRANSITION"

    response = client.patch(
        url, json={"status": "confirmed"}, headers=doctor_headers(doctor_id)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    response = client.patch(
        url, json={"status": "cancelled", "notes": "Doctor unavailable"}, headers=ADMIN
    )
    assert response.status_code == 200
    assert response.json()["notes"] == "Doctor unavailable"

    response = client.patch(
        url, json={"status": "completed"}, headers=doctor_headers(doctor_id)
    )
    assert response.status_code == 409
    assert response.json()["error"] == "INVALID_STATE"

    # Cancelled booking no longer holds the slot
    assert reserve(client, doctor_id, headers=patient("P2")).status_code == 201

    summary = client.get(f"{API}/bookings/summary", headers=ADMIN).json()
    assert summary["total"] == 2
    assert summary["by_status"]["cancelled"] == 1
    assert summary["by_status"]["pending"] == 1


def test_booking_visibility(client, doctor_id):
    booking_id = reserve(client, doctor_id).json()["booking_id"]

    assert client.get(f"{API}/bookings/{booking_id}", headers=patient()).status_code == 200
    assert client.get(f"{API}/bookings/{booking_id}", headers=patient("P2")).status_code == 403
    assert (
        client.get(
            f"{API}/bookings/{booking_id}", headers=doctor_headers(doctor_id)
        ).status_code
        == 200
    )
    assert client.get(f"{API}/bookings", headers=patient()).status_code == 403

    queue = client.get(
        f"{API}/doctors/{doctor_id}/bookings", headers=doctor_headers(doctor_id)
    )
    assert [b["booking_id"] for b in queue.json()] == [booking_id]

    in_range = client.get(
        f"{API}/bookings",
        params={"start": NEXT_MONDAY, "end": NEXT_MONDAY},
        headers=ADMIN,
    )
    assert [b["booking_id"] for b in in_range.json()] == [booking_id]

    assert client.delete(f"{API}/bookings/{booking_id}", headers=ADMIN).status_code == 204
    assert client.get(f"{API}/bookings/{booking_id}", headers=ADMIN).status_code == 404


def test_schedule_is_owned_by_its_doctor(client, doctor_id):
    response = client.put(
        f"{API}/doctors/{doctor_id}/schedule",
        json={"days": []},
        headers=doctor_headers("someone-else"),
    )
    assert response.status_code == 403

    schedule = client.get(f"{API}/doctors/{doctor_id}/schedule").json()
    monday = next(d for d in schedule["days"] if d["day"] == "monday")
    assert monday["time_slots"] == [{"start": "09:00:00", "end": "10:00:00"}]


def test_exceptions_and_bookable_dates(client, doctor_id):
    url = f"{API}/doctors/{doctor_id}/exceptions/{NEXT_MONDAY}"

    response = client.put(
        url,
        json={"kind": "custom", "custom_slots": ["14:00", "11:00"]},
        headers=doctor_headers(doctor_id),
    )
    assert response.status_code == 200
    assert response.json()["custom_slots"] == ["11:00:00", "14:00:00"]

    slots = client.get(f"{API}/doctors/{doctor_id}/slots", params={"date": NEXT_MONDAY})
    assert slots.json()["slots"] == ["11:00:00", "14:00:00"]

    response = client.put(
        url, json={"kind": "unavailable"}, headers=doctor_headers(doctor_id)
    )
    assert response.status_code == 200

    listed = client.get(
        f"{API}/doctors/{doctor_id}/exceptions",
        params={"start": TODAY.isoformat(), "end": NEXT_MONDAY},
    )
    assert [e["kind"] for e in listed.json()] == ["unavailable"]

    dates = client.get(f"{API}/doctors/{doctor_id}/bookable-dates").json()["dates"]
    assert TODAY.isoformat() in dates
    assert NEXT_MONDAY not in dates

    assert client.delete(url, headers=doctor_headers(doctor_id)).status_code == 204
    assert client.delete(url, headers=doctor_headers(doctor_id)).status_code == 404


def test_performance_headers_in_development(client, doctor_id):
    response = client.get(f"{API}/doctors/{doctor_id}")
    assert "X-Request-ID" in response.headers
    assert "sql;dur=" in response.headers["Server-Timing"]
