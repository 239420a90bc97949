"""Test fixtures for the dosage scheduler."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator
from datetime import UTC, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("SCHEDULER_TIMEZONE", "UTC")

from dosage_scheduler.api import deps
from dosage_scheduler.core.clock import FixedClock
from dosage_scheduler.core.config import get_settings
from dosage_scheduler.core.security import create_session_token, get_password_hash
from dosage_scheduler.db.base import Base
from dosage_scheduler.db.session import dispose_engine, get_sessionmaker
from dosage_scheduler.main import app
from dosage_scheduler.models import (
    Hospital,
    Prescription,
    PrescriptionStatus,
    User,
    UserRole,
    UserStatus,
)

# Monday 2 March 2026, 14:00 UTC
FROZEN_NOW = datetime(2026, 3, 2, 14, 0, tzinfo=UTC)


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


def set_clock(instant: datetime) -> None:
    """Pin the API's notion of "now"."""
    app.dependency_overrides[deps.get_clock] = lambda: FixedClock(instant)


def auth_headers(user: User) -> dict[str, str]:
    token = create_session_token(user.id, role=user.role.value, hospital_id=user.hospital_id)
    return {"Authorization": f"Bearer {token}"}


def _user(hospital: Hospital, email: str, password: str, role: UserRole, first: str) -> User:
    return User(
        hospital_id=hospital.id,
        email=email,
        hashed_password=get_password_hash(password),
        first_name=first,
        last_name="Tester",
        role=role,
        status=UserStatus.ACTIVE,
    )


@pytest_asyncio.fixture()
async def app_context(
    reset_database: AsyncIterator[None], db_url: str
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client, seeded users and prescriptions, and a frozen clock."""
    sessionmaker = get_sessionmaker(db_url)
    password = "Passw0rd!"

    async with sessionmaker() as session:
        hospital = Hospital(name="City General", slug="city-general")
        session.add(hospital)
        await session.flush()

        doctor = _user(hospital, "doctor@example.com", password, UserRole.DOCTOR, "Grace")
        patient = _user(hospital, "patient@example.com", password, UserRole.PATIENT, "Sam")
        other_patient = _user(hospital, "other@example.com", password, UserRole.PATIENT, "Alex")
        session.add_all([doctor, patient, other_patient])
        await session.flush()

        metformin = Prescription(
            hospital_id=hospital.id,
            patient_id=patient.id,
            doctor_id=doctor.id,
            doctor_name=doctor.full_name,
            medication_name="Metformin",
            dosage="500mg",
            frequency="twice_daily",
            duration="30 days",
            instructions="Take with meals",
            status=PrescriptionStatus.ACTIVE,
        )
        completed = Prescription(
            hospital_id=hospital.id,
            patient_id=patient.id,
            doctor_id=doctor.id,
            doctor_name=doctor.full_name,
            medication_name="Ibuprofen",
            dosage="200mg",
            frequency="as_needed",
            duration="5 days",
            status=PrescriptionStatus.COMPLETED,
        )
        foreign = Prescription(
            hospital_id=hospital.id,
            patient_id=other_patient.id,
            doctor_id=doctor.id,
            doctor_name=doctor.full_name,
            medication_name="Lisinopril",
            dosage="10mg",
            frequency="once_daily",
            duration="ongoing",
            status=PrescriptionStatus.ACTIVE,
        )
        session.add_all([metformin, completed, foreign])
        await session.commit()

        context: dict[str, object] = {
            "hospital_id": hospital.id,
            "patient": patient,
            "patient_id": patient.id,
            "patient_email": patient.email,
            "other_patient": other_patient,
            "password": password,
            "patient_headers": auth_headers(patient),
            "other_headers": auth_headers(other_patient),
            "metformin_prescription_id": metformin.id,
            "completed_prescription_id": completed.id,
            "foreign_prescription_id": foreign.id,
            "sessionmaker": sessionmaker,
            "now": FROZEN_NOW,
            "set_clock": set_clock,
        }

    set_clock(FROZEN_NOW)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context
    app.dependency_overrides.clear()
