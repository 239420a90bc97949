"""Turn prescription medications into medication schedules."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.models.medication_schedule import DurationUnit, ScheduleSource
from dosage_scheduler.models.prescription import Prescription
from dosage_scheduler.models.user import User
from dosage_scheduler.services import audit_service, prescription_service, schedule_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MedicationInput:
    """One medication as handed over by a prescription."""

    medication_name: str
    dosage: str = ""
    frequency: str | None = None
    duration: str | int | None = None
    duration_unit: DurationUnit | str | None = None
    specific_times: list[str] | None = None
    instructions: str = ""

    @classmethod
    def from_prescription(cls, prescription: Prescription) -> "MedicationInput":
        return cls(
            medication_name=prescription.medication_name,
            dosage=prescription.dosage,
            frequency=prescription.frequency,
            duration=prescription.duration,
            specific_times=prescription.specific_times,
            instructions=prescription.instructions or "",
        )


@dataclass
class ImportResult:
    schedule_ids: list[uuid.UUID] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.schedule_ids)

    @property
    def message(self) -> str:
        if self.schedule_ids:
            return f"Imported {self.count} medication(s) into the schedule"
        if self.skipped:
            return "All medications are already scheduled"
        return "No medications to import"


def _parse_record_id(source_record_id: str | None) -> uuid.UUID | None:
    if not source_record_id:
        return None
    try:
        return uuid.UUID(str(source_record_id))
    except ValueError:
        return None


async def _mark_prescription_imported(
    session: AsyncSession, *, patient_id: uuid.UUID, source_record_id: str
) -> None:
    prescription_id = _parse_record_id(source_record_id)
    if prescription_id is None:
        logger.warning("Source record %r is not a prescription id", source_record_id)
        return
    try:
        await prescription_service.set_imported(
            session, patient_id=patient_id, prescription_id=prescription_id
        )
    except prescription_service.PrescriptionNotFoundError:
        logger.warning(
            "Prescription %s not found for patient %s; import flag not set",
            prescription_id,
            patient_id,
        )
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to flag prescription %s as imported", prescription_id)


async def import_medications(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    medications: list[MedicationInput],
    now: datetime,
    source_record_id: str | None = None,
    actor: User | None = None,
    ip_address: str | None = None,
) -> ImportResult:
    """Create one active schedule per medication the patient does not already follow.

    Each schedule is committed on its own. A medication that already has an
    active prescription schedule, including one created concurrently, is
    reported in ``skipped`` rather than failing the batch.
    """
    # rollbacks expire loaded instances
    actor_id = actor.id if actor is not None else patient_id
    actor_hospital_id = actor.hospital_id if actor is not None else None

    result = ImportResult()
    for medication in medications:
        name = (medication.medication_name or "").strip()
        if not name:
            continue
        if await schedule_service.active_prescription_schedule_exists(
            session, patient_id=patient_id, medication_name=name
        ):
            result.skipped.append(name)
            continue

        schedule = schedule_service.build_schedule(
            patient_id=patient_id,
            medication_name=name,
            dosage=medication.dosage,
            frequency=medication.frequency,
            duration=medication.duration,
            duration_unit=medication.duration_unit,
            specific_times=medication.specific_times,
            instructions=medication.instructions,
            source=ScheduleSource.DOCTOR_PRESCRIPTION,
            source_record_id=source_record_id,
            now=now,
        )
        session.add(schedule)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            logger.info("Concurrent import already scheduled %s for %s", name, patient_id)
            result.skipped.append(name)
            continue
        result.schedule_ids.append(schedule.id)

    if source_record_id and (result.schedule_ids or result.skipped):
        await _mark_prescription_imported(
            session, patient_id=patient_id, source_record_id=source_record_id
        )

    if result.schedule_ids:
        await audit_service.record_event(
            session,
            event_type="medication.imported",
            user_id=actor_id,
            hospital_id=actor_hospital_id,
            resource_type="medication_schedule",
            resource_id=source_record_id,
            description=result.message,
            payload={
                "schedule_ids": [str(schedule_id) for schedule_id in result.schedule_ids],
                "skipped": result.skipped,
            },
            ip_address=ip_address,
        )
    return result
