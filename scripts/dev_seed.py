"""Seed a hospital, a doctor, a patient and two prescriptions for local work."""

from __future__ import annotations

import asyncio

from sqlalchemy import select

from dosage_scheduler.core.config import get_settings
from dosage_scheduler.core.security import get_password_hash
from dosage_scheduler.db.session import get_sessionmaker
from dosage_scheduler.models import (
    Hospital,
    Prescription,
    PrescriptionStatus,
    User,
    UserRole,
    UserStatus,
)

PATIENT_EMAIL = "patient@hospital.local"
DOCTOR_EMAIL = "doctor@hospital.local"
PASSWORD = "patient123"


async def main() -> None:
    settings = get_settings()
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        existing = await session.execute(select(User.id).where(User.email == PATIENT_EMAIL))
        if existing.first():
            print(f"User {PATIENT_EMAIL} already exists")
            return

        hospital = Hospital(name="City General", slug="city-general")
        session.add(hospital)
        await session.flush()

        doctor = User(
            hospital_id=hospital.id,
            email=DOCTOR_EMAIL,
            hashed_password=get_password_hash(PASSWORD),
            first_name="Grace",
            last_name="Okafor",
            role=UserRole.DOCTOR,
            status=UserStatus.ACTIVE,
        )
        patient = User(
            hospital_id=hospital.id,
            email=PATIENT_EMAIL,
            hashed_password=get_password_hash(PASSWORD),
            first_name="Sam",
            last_name="Rivera",
            role=UserRole.PATIENT,
            status=UserStatus.ACTIVE,
        )
        session.add_all([doctor, patient])
        await session.flush()

        session.add_all(
            [
                Prescription(
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
                ),
                Prescription(
                    hospital_id=hospital.id,
                    patient_id=patient.id,
                    doctor_id=doctor.id,
                    doctor_name=doctor.full_name,
                    medication_name="Amoxicillin",
                    dosage="250mg",
                    frequency="Three times a day",
                    duration="1 week",
                    instructions="Finish the full course",
                    status=PrescriptionStatus.ACTIVE,
                ),
            ]
        )
        await session.commit()
        print(f"Created patient {PATIENT_EMAIL} / {PASSWORD} with two prescriptions")


if __name__ == "__main__":
    asyncio.run(main())
