"""Medication schedule services."""
from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from sqlalchemy import Select, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from dosage_scheduler.core.clock import coerce_utc
from dosage_scheduler.models.medication_schedule import (
    DurationUnit,
    Frequency,
    IntakeLogEntry,
    IntakeStatus,
    MedicationSchedule,
    ScheduleSource,
)
from dosage_scheduler.services import duration_service, frequency_service
from dosage_scheduler.services.adherence_service import adherence_percent

logger = logging.getLogger(__name__)


class ScheduleStatusFilter(str, enum.Enum):
    """Which schedules a listing returns."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ALL = "all"


class ScheduleNotFoundError(ValueError):
    """Raised when a schedule does not exist or belongs to someone else."""


class DoseAlreadyRecordedError(ValueError):
    """Raised when the dose already has an intake log entry."""


class IntakeConflictError(RuntimeError):
    """Raised when concurrent writers keep invalidating an intake update."""


@dataclass(frozen=True)
class ScheduleCounters:
    taken_doses: int
    missed_doses: int
    skipped_doses: int
    adherence_rate: int


def build_schedule(
    *,
    patient_id: uuid.UUID,
    medication_name: str,
    dosage: str,
    frequency: str | None,
    duration: str | int | None,
    duration_unit: DurationUnit | str | None,
    specific_times: list[str] | None,
    instructions: str,
    source: ScheduleSource,
    source_record_id: str | None,
    now: datetime,
) -> MedicationSchedule:
    """Create an unsaved schedule with resolved times and course dates."""
    label = frequency_service.normalize_frequency(frequency)
    if label is None:
        if frequency:
            logger.info(
                "Unrecognized frequency %r for %s; using the once-daily fallback",
                frequency,
                medication_name,
            )
        label = Frequency.ONCE_DAILY
    try:
        times_per_day, times = frequency_service.resolve_schedule_times(
            label, specific_times=specific_times
        )
    except ValueError:
        logger.warning(
            "Ignoring malformed dose times %r for %s; using %s defaults",
            specific_times,
            medication_name,
            label.value,
        )
        times_per_day, times = frequency_service.resolve_schedule_times(label)
    value, unit = duration_service.parse_duration_text(duration, duration_unit)
    start = coerce_utc(now)
    return MedicationSchedule(
        id=uuid.uuid4(),
        patient_id=patient_id,
        medication_name=medication_name,
        dosage=dosage or "",
        instructions=instructions or "",
        frequency=label,
        times_per_day=times_per_day,
        specific_times=times,
        duration_value=value,
        duration_unit=unit,
        start_date=start,
        end_date=duration_service.calculate_end_date(start, value, unit),
        source=source,
        source_record_id=source_record_id,
        is_active=True,
        reminder_enabled=False,
        reminder_minutes_before=15,
        taken_doses=0,
        missed_doses=0,
        skipped_doses=0,
        adherence_rate=100,
    )


async def list_schedules(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    status: ScheduleStatusFilter = ScheduleStatusFilter.ACTIVE,
) -> list[MedicationSchedule]:
    stmt: Select[tuple[MedicationSchedule]] = select(MedicationSchedule).where(
        MedicationSchedule.patient_id == patient_id
    )
    if status is ScheduleStatusFilter.ACTIVE:
        stmt = stmt.where(MedicationSchedule.is_active.is_(True))
    elif status is ScheduleStatusFilter.INACTIVE:
        stmt = stmt.where(MedicationSchedule.is_active.is_(False))
    stmt = stmt.order_by(MedicationSchedule.created_at.desc()).execution_options(
        populate_existing=True
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_schedule(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    schedule_id: uuid.UUID,
) -> MedicationSchedule:
    """Load a schedule owned by ``patient_id`` with its current version."""
    stmt = (
        select(MedicationSchedule)
        .where(
            MedicationSchedule.id == schedule_id,
            MedicationSchedule.patient_id == patient_id,
        )
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    schedule = result.scalar_one_or_none()
    if schedule is None:
        raise ScheduleNotFoundError("Schedule not found")
    return schedule


async def active_prescription_schedule_exists(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    medication_name: str,
) -> bool:
    stmt = (
        select(MedicationSchedule.id)
        .where(
            MedicationSchedule.patient_id == patient_id,
            MedicationSchedule.medication_name == medication_name,
            MedicationSchedule.source == ScheduleSource.DOCTOR_PRESCRIPTION,
            MedicationSchedule.is_active.is_(True),
        )
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.first() is not None


async def create_manual_schedule(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    medication_name: str,
    dosage: str,
    frequency: str | None,
    duration: str | int | None,
    duration_unit: DurationUnit | str | None,
    specific_times: list[str] | None,
    instructions: str,
    now: datetime,
) -> MedicationSchedule:
    """Add a patient-entered medication to the schedule."""
    name = medication_name.strip()
    if not name:
        raise ValueError("medication_name is required")
    schedule = build_schedule(
        patient_id=patient_id,
        medication_name=name,
        dosage=dosage,
        frequency=frequency,
        duration=duration,
        duration_unit=duration_unit,
        specific_times=specific_times,
        instructions=instructions,
        source=ScheduleSource.MANUAL,
        source_record_id=None,
        now=now,
    )
    session.add(schedule)
    await session.commit()
    await session.refresh(schedule)
    return schedule


async def deactivate_schedule(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    schedule_id: uuid.UUID,
    now: datetime,
) -> MedicationSchedule:
    """Discontinue a schedule; its intake history is kept."""
    schedule = await get_schedule(session, patient_id=patient_id, schedule_id=schedule_id)
    if schedule.is_active:
        schedule.is_active = False
        schedule.deactivated_at = coerce_utc(now)
        await session.commit()
        await session.refresh(schedule)
    return schedule


async def update_reminders(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    schedule_id: uuid.UUID,
    reminder_enabled: bool,
    reminder_minutes_before: int | None = None,
) -> MedicationSchedule:
    schedule = await get_schedule(session, patient_id=patient_id, schedule_id=schedule_id)
    schedule.reminder_enabled = reminder_enabled
    if reminder_minutes_before is not None:
        schedule.reminder_minutes_before = reminder_minutes_before
    await session.commit()
    await session.refresh(schedule)
    return schedule


async def deactivate_expired(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    now: datetime,
) -> int:
    """Deactivate the patient's schedules whose course has ended."""
    cutoff = coerce_utc(now)
    stmt = (
        update(MedicationSchedule)
        .where(
            MedicationSchedule.patient_id == patient_id,
            MedicationSchedule.is_active.is_(True),
            MedicationSchedule.end_date.is_not(None),
            MedicationSchedule.end_date < cutoff,
        )
        .values(
            is_active=False,
            deactivated_at=cutoff,
            version=MedicationSchedule.version + 1,
        )
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    await session.commit()
    if result.rowcount:
        logger.info("Deactivated %s expired schedules for patient %s", result.rowcount, patient_id)
    return result.rowcount or 0


def counters_from_log(entries: list[IntakeLogEntry]) -> ScheduleCounters:
    """Rebuild the denormalized counters from intake log entries."""
    taken = sum(1 for entry in entries if entry.status is IntakeStatus.TAKEN)
    missed = sum(1 for entry in entries if entry.status is IntakeStatus.MISSED)
    skipped = sum(1 for entry in entries if entry.status is IntakeStatus.SKIPPED)
    return ScheduleCounters(
        taken_doses=taken,
        missed_doses=missed,
        skipped_doses=skipped,
        adherence_rate=adherence_percent(taken, taken + missed + skipped, empty=100),
    )


def apply_counters(schedule: MedicationSchedule, counters: ScheduleCounters) -> None:
    schedule.taken_doses = counters.taken_doses
    schedule.missed_doses = counters.missed_doses
    schedule.skipped_doses = counters.skipped_doses
    schedule.adherence_rate = counters.adherence_rate


def _increment_counters(schedule: MedicationSchedule, status: IntakeStatus) -> None:
    taken = schedule.taken_doses + (status is IntakeStatus.TAKEN)
    missed = schedule.missed_doses + (status is IntakeStatus.MISSED)
    skipped = schedule.skipped_doses + (status is IntakeStatus.SKIPPED)
    apply_counters(
        schedule,
        ScheduleCounters(
            taken_doses=taken,
            missed_doses=missed,
            skipped_doses=skipped,
            adherence_rate=adherence_percent(taken, taken + missed + skipped, empty=100),
        ),
    )


def _minutes(clock: str) -> int:
    parsed = frequency_service.parse_clock_time(clock)
    return parsed.hour * 60 + parsed.minute


def _pick_dose_time(
    schedule: MedicationSchedule,
    requested: str | None,
    logged: set[str],
    local_now: datetime,
) -> str:
    scheduled = schedule.scheduled_times
    if requested is not None:
        dose_time = frequency_service.normalize_times([requested])[0]
        if scheduled and dose_time not in scheduled:
            raise ValueError(f"{dose_time} is not a scheduled time for this medication")
        return dose_time
    if not scheduled:
        return local_now.strftime("%H:%M")

    open_times = [clock for clock in scheduled if clock not in logged]
    if not open_times:
        raise DoseAlreadyRecordedError("All doses for today are already recorded")
    now_minutes = local_now.hour * 60 + local_now.minute
    return min(open_times, key=lambda clock: abs(_minutes(clock) - now_minutes))


async def _logged_times(
    session: AsyncSession, schedule_id: uuid.UUID, dose_date: date
) -> set[str]:
    result = await session.execute(
        select(IntakeLogEntry.dose_time).where(
            IntakeLogEntry.schedule_id == schedule_id,
            IntakeLogEntry.dose_date == dose_date,
        )
    )
    return set(result.scalars().all())


async def record_intake(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    schedule_id: uuid.UUID,
    now: datetime,
    tz: ZoneInfo,
    time: str | None = None,
    status: IntakeStatus = IntakeStatus.TAKEN,
    notes: str | None = None,
    max_retries: int = 3,
) -> IntakeLogEntry:
    """Append today's intake entry and refresh the schedule counters atomically.

    The entry and the counter update commit together; the schedule row is
    guarded by its version column, so a concurrent writer forces a reload
    and retry instead of a lost update.
    """
    logged_at = coerce_utc(now)
    local_now = logged_at.astimezone(tz)
    dose_date = local_now.date()

    for attempt in range(1, max_retries + 1):
        schedule = await get_schedule(session, patient_id=patient_id, schedule_id=schedule_id)
        if not schedule.is_active:
            raise ValueError("Schedule is no longer active")

        logged = await _logged_times(session, schedule.id, dose_date)
        dose_time = _pick_dose_time(schedule, time, logged, local_now)
        if dose_time in logged:
            raise DoseAlreadyRecordedError(
                f"The {dose_time} dose for {dose_date.isoformat()} is already recorded"
            )

        entry = IntakeLogEntry(
            schedule_id=schedule.id,
            dose_date=dose_date,
            dose_time=dose_time,
            status=status,
            logged_at=logged_at,
            notes=notes or None,
        )
        session.add(entry)
        _increment_counters(schedule, status)
        try:
            await session.commit()
        except StaleDataError:
            await session.rollback()
            logger.info(
                "Schedule %s changed during intake update (attempt %s/%s); retrying",
                schedule_id,
                attempt,
                max_retries,
            )
            continue
        except IntegrityError as exc:
            await session.rollback()
            raise DoseAlreadyRecordedError(
                f"The {dose_time} dose for {dose_date.isoformat()} is already recorded"
            ) from exc
        await session.refresh(entry)
        return entry

    raise IntakeConflictError("Schedule is being updated concurrently; try again")


async def list_intake_log(
    session: AsyncSession,
    *,
    schedule_id: uuid.UUID,
) -> list[IntakeLogEntry]:
    result = await session.execute(
        select(IntakeLogEntry)
        .where(IntakeLogEntry.schedule_id == schedule_id)
        .order_by(IntakeLogEntry.logged_at.asc())
    )
    return list(result.scalars().all())


async def recompute_counters(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    schedule_id: uuid.UUID,
) -> ScheduleCounters:
    """Reset a schedule's counters from its intake log."""
    schedule = await get_schedule(session, patient_id=patient_id, schedule_id=schedule_id)
    counters = counters_from_log(await list_intake_log(session, schedule_id=schedule.id))
    apply_counters(schedule, counters)
    await session.commit()
    return counters
