"""Tests for schedule persistence, intake recording and the importer."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import select, update

from dosage_scheduler.db.session import get_sessionmaker
from dosage_scheduler.models import (
    IntakeLogEntry,
    IntakeStatus,
    MedicationSchedule,
    User,
    UserRole,
    UserStatus,
)
from dosage_scheduler.services import schedule_import_service, schedule_service
from dosage_scheduler.services.schedule_import_service import MedicationInput

pytestmark = pytest.mark.asyncio

UTC_ZONE = ZoneInfo("UTC")
NOW = datetime(2026, 3, 2, 14, 0, tzinfo=UTC)


async def _seed_patient(session) -> User:
    patient = User(
        email=f"patient-{uuid.uuid4().hex[:6]}@example.com",
        hashed_password="x",
        first_name="Pat",
        last_name="Ient",
        role=UserRole.PATIENT,
        status=UserStatus.ACTIVE,
    )
    session.add(patient)
    await session.commit()
    await session.refresh(patient)
    return patient


async def test_concurrent_duplicate_import_is_reported_as_skipped(
    reset_database: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def _never_exists(*_args, **_kwargs) -> bool:
        return False

    # simulate two importers that both passed the existence check
    monkeypatch.setattr(
        schedule_service, "active_prescription_schedule_exists", _never_exists
    )
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        patient = await _seed_patient(session)
        medication = MedicationInput(medication_name="Metformin", frequency="twice_daily")

        first = await schedule_import_service.import_medications(
            session, patient_id=patient.id, medications=[medication], now=NOW
        )
        second = await schedule_import_service.import_medications(
            session, patient_id=patient.id, medications=[medication], now=NOW
        )

        assert first.count == 1
        assert second.count == 0
        assert second.skipped == ["Metformin"]
        rows = (await session.execute(select(MedicationSchedule))).scalars().all()
        assert len(rows) == 1


async def test_manual_schedules_do_not_block_prescription_import(reset_database: None) -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        patient = await _seed_patient(session)
        await schedule_service.create_manual_schedule(
            session,
            patient_id=patient.id,
            medication_name="Metformin",
            dosage="500mg",
            frequency="once_daily",
            duration=None,
            duration_unit=None,
            specific_times=None,
            instructions="",
            now=NOW,
        )
        result = await schedule_import_service.import_medications(
            session,
            patient_id=patient.id,
            medications=[MedicationInput(medication_name="Metformin")],
            now=NOW,
        )
        assert result.count == 1


async def test_record_intake_updates_counters_to_match_log(reset_database: None) -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        patient = await _seed_patient(session)
        result = await schedule_import_service.import_medications(
            session,
            patient_id=patient.id,
            medications=[
                MedicationInput(medication_name="Amoxicillin", frequency="three_times_daily")
            ],
            now=NOW,
        )
        schedule_id = result.schedule_ids[0]

        for clock, status in (
            ("08:00", IntakeStatus.TAKEN),
            ("14:00", IntakeStatus.MISSED),
            ("20:00", IntakeStatus.TAKEN),
        ):
            await schedule_service.record_intake(
                session,
                patient_id=patient.id,
                schedule_id=schedule_id,
                now=NOW,
                tz=UTC_ZONE,
                time=clock,
                status=status,
            )

        schedule = await schedule_service.get_schedule(
            session, patient_id=patient.id, schedule_id=schedule_id
        )
        assert (schedule.taken_doses, schedule.missed_doses, schedule.adherence_rate) == (
            2,
            1,
            67,
        )
        assert schedule.version == 4

        log = await schedule_service.list_intake_log(session, schedule_id=schedule_id)
        assert sorted(entry.dose_time for entry in log) == ["08:00", "14:00", "20:00"]
        counters = await schedule_service.recompute_counters(
            session, patient_id=patient.id, schedule_id=schedule_id
        )
        assert counters == schedule_service.ScheduleCounters(
            taken_doses=2, missed_doses=1, skipped_doses=0, adherence_rate=67
        )

        with pytest.raises(schedule_service.DoseAlreadyRecordedError):
            await schedule_service.record_intake(
                session,
                patient_id=patient.id,
                schedule_id=schedule_id,
                now=NOW,
                tz=UTC_ZONE,
            )


async def test_record_intake_picks_closest_open_time(reset_database: None) -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        patient = await _seed_patient(session)
        result = await schedule_import_service.import_medications(
            session,
            patient_id=patient.id,
            medications=[MedicationInput(medication_name="Ibuprofen", frequency="qid")],
            now=NOW,
        )
        entry = await schedule_service.record_intake(
            session,
            patient_id=patient.id,
            schedule_id=result.schedule_ids[0],
            now=NOW + timedelta(hours=1, minutes=30),
            tz=UTC_ZONE,
        )
        assert entry.dose_time == "16:00"


async def test_as_needed_intake_uses_current_minute(reset_database: None) -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        patient = await _seed_patient(session)
        schedule = await schedule_service.create_manual_schedule(
            session,
            patient_id=patient.id,
            medication_name="Paracetamol",
            dosage="500mg",
            frequency="PRN",
            duration="5 days",
            duration_unit=None,
            specific_times=None,
            instructions="",
            now=NOW,
        )
        assert schedule.times_per_day == 0
        entry = await schedule_service.record_intake(
            session,
            patient_id=patient.id,
            schedule_id=schedule.id,
            now=NOW + timedelta(minutes=7),
            tz=UTC_ZONE,
        )
        assert entry.dose_time == "14:07"


async def test_record_intake_retries_after_concurrent_schedule_update(
    reset_database: None, monkeypatch: pytest.MonkeyPatch
) -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        patient = await _seed_patient(session)
        patient_id = patient.id
        result = await schedule_import_service.import_medications(
            session,
            patient_id=patient_id,
            medications=[MedicationInput(medication_name="Metformin", frequency="twice_daily")],
            now=NOW,
        )
        schedule_id = result.schedule_ids[0]

    original_get = schedule_service.get_schedule
    calls = {"count": 0}

    async def _get_then_bump(session, **kwargs):  # type: ignore[no-untyped-def]
        schedule = await original_get(session, **kwargs)
        calls["count"] += 1
        if calls["count"] == 1:
            async with sessionmaker() as other:
                await other.execute(
                    update(MedicationSchedule)
                    .where(MedicationSchedule.id == schedule_id)
                    .values(version=MedicationSchedule.version + 1)
                )
                await other.commit()
        return schedule

    monkeypatch.setattr(schedule_service, "get_schedule", _get_then_bump)

    async with sessionmaker() as session:
        entry = await schedule_service.record_intake(
            session,
            patient_id=patient_id,
            schedule_id=schedule_id,
            now=NOW,
            tz=UTC_ZONE,
            time="20:00",
        )
        assert entry.dose_time == "20:00"
        assert calls["count"] == 2

        rows = (await session.execute(select(IntakeLogEntry))).scalars().all()
        assert len(rows) == 1
        schedule = await original_get(session, patient_id=patient_id, schedule_id=schedule_id)
        assert schedule.taken_doses == 1


async def test_deactivate_expired_closes_finished_courses(reset_database: None) -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        patient = await _seed_patient(session)
        patient_id = patient.id
        short = await schedule_service.create_manual_schedule(
            session,
            patient_id=patient_id,
            medication_name="Amoxicillin",
            dosage="250mg",
            frequency="three_times_daily",
            duration=3,
            duration_unit="days",
            specific_times=None,
            instructions="",
            now=NOW,
        )
        ongoing = await schedule_service.create_manual_schedule(
            session,
            patient_id=patient_id,
            medication_name="Levothyroxine",
            dosage="50mcg",
            frequency="once_daily",
            duration="ongoing",
            duration_unit=None,
            specific_times=None,
            instructions="",
            now=NOW,
        )

        assert await schedule_service.deactivate_expired(
            session, patient_id=patient_id, now=NOW + timedelta(days=2)
        ) == 0
        closed = await schedule_service.deactivate_expired(
            session, patient_id=patient_id, now=NOW + timedelta(days=4)
        )
        assert closed == 1

        active = await schedule_service.list_schedules(session, patient_id=patient_id)
        assert [schedule.id for schedule in active] == [ongoing.id]
        inactive = await schedule_service.list_schedules(
            session,
            patient_id=patient_id,
            status=schedule_service.ScheduleStatusFilter.INACTIVE,
        )
        assert [schedule.id for schedule in inactive] == [short.id]
        assert inactive[0].deactivated_at is not None

        with pytest.raises(ValueError):
            await schedule_service.record_intake(
                session,
                patient_id=patient_id,
                schedule_id=short.id,
                now=NOW + timedelta(days=4),
                tz=UTC_ZONE,
            )
