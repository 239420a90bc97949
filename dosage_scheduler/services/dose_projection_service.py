"""Project a patient's doses for a calendar day."""

from __future__ import annotations

import enum
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.core.clock import coerce_utc
from dosage_scheduler.models.medication_schedule import (
    IntakeLogEntry,
    IntakeStatus,
    MedicationSchedule,
)
from dosage_scheduler.services import frequency_service, schedule_service
from dosage_scheduler.services.adherence_service import adherence_percent


class DoseStatus(str, enum.Enum):
    TAKEN = "taken"
    MISSED = "missed"
    SKIPPED = "skipped"
    PENDING = "pending"


@dataclass(frozen=True)
class DoseInstance:
    schedule_id: uuid.UUID
    medication_name: str
    dosage: str
    instructions: str
    date: date
    time: str
    status: DoseStatus
    reminder_enabled: bool = False
    logged_at: datetime | None = None
    notes: str | None = None

    @property
    def id(self) -> str:
        return f"{self.schedule_id}-{self.time}"


@dataclass(frozen=True)
class DayStats:
    total_medications: int
    total_doses: int
    taken_count: int
    missed_count: int
    skipped_count: int
    pending_count: int
    adherence_rate: int
    streak: int = 0


@dataclass
class DayProjection:
    date: date
    doses: list[DoseInstance]
    stats: DayStats
    upcoming: list[DoseInstance] = field(default_factory=list)


def _local_date(value: datetime | None, tz: ZoneInfo) -> date | None:
    if value is None:
        return None
    return coerce_utc(value).astimezone(tz).date()


def covers_day(schedule: MedicationSchedule, day: date, tz: ZoneInfo) -> bool:
    """True when ``day`` lies within the schedule's course, both ends inclusive.

    A discontinued schedule stops covering days after its deactivation.
    """
    start = _local_date(schedule.start_date, tz)
    if start is None or day < start:
        return False
    ends = [
        end
        for end in (
            _local_date(schedule.end_date, tz),
            _local_date(schedule.deactivated_at, tz),
        )
        if end is not None
    ]
    return not ends or day <= min(ends)


def _dose_moment(day: date, clock: str, tz: ZoneInfo) -> datetime:
    parsed = frequency_service.parse_clock_time(clock)
    return datetime.combine(day, parsed, tzinfo=tz)


def build_day_doses(
    schedules: Sequence[MedicationSchedule],
    logs: Iterable[IntakeLogEntry],
    day: date,
    now: datetime,
    tz: ZoneInfo,
) -> list[DoseInstance]:
    """Expand schedules into the day's dose instances.

    ``schedules`` must already be in insertion order; the sort by time of day
    is stable, so ties keep that order.
    """
    recorded = {
        (entry.schedule_id, entry.dose_time): entry
        for entry in logs
        if entry.dose_date == day
    }
    current = coerce_utc(now)
    doses: list[DoseInstance] = []
    for schedule in schedules:
        if not covers_day(schedule, day, tz):
            continue
        for clock in schedule.scheduled_times:
            entry = recorded.get((schedule.id, clock))
            if entry is not None:
                status = DoseStatus(entry.status.value)
            elif _dose_moment(day, clock, tz) < current:
                status = DoseStatus.MISSED
            else:
                status = DoseStatus.PENDING
            doses.append(
                DoseInstance(
                    schedule_id=schedule.id,
                    medication_name=schedule.medication_name,
                    dosage=schedule.dosage,
                    instructions=schedule.instructions,
                    date=day,
                    time=clock,
                    status=status,
                    reminder_enabled=schedule.reminder_enabled,
                    logged_at=coerce_utc(entry.logged_at) if entry is not None else None,
                    notes=entry.notes if entry is not None else None,
                )
            )
    doses.sort(key=lambda dose: dose.time)
    return doses


def summarize(
    schedules: Sequence[MedicationSchedule],
    doses: Sequence[DoseInstance],
    *,
    streak: int = 0,
) -> DayStats:
    counts = {status: 0 for status in DoseStatus}
    for dose in doses:
        counts[dose.status] += 1
    total = len(doses)
    return DayStats(
        total_medications=len(schedules),
        total_doses=total,
        taken_count=counts[DoseStatus.TAKEN],
        missed_count=counts[DoseStatus.MISSED],
        skipped_count=counts[DoseStatus.SKIPPED],
        pending_count=counts[DoseStatus.PENDING],
        adherence_rate=adherence_percent(counts[DoseStatus.TAKEN], total, empty=100),
        streak=streak,
    )


def _is_compliant(
    expected: list[tuple[uuid.UUID, str]], taken: set[tuple[uuid.UUID, str]]
) -> bool:
    return bool(expected) and all(dose in taken for dose in expected)


def compute_streak(
    schedules: Sequence[MedicationSchedule],
    logs: Iterable[IntakeLogEntry],
    day: date,
    tz: ZoneInfo,
    *,
    lookback_days: int = 365,
    day_schedules: Sequence[MedicationSchedule] | None = None,
) -> int:
    """Count consecutive fully-taken days ending at ``day``.

    Days without any scheduled dose neither extend nor break the streak.
    ``day`` itself only counts once it is already fully taken; it is judged
    against ``day_schedules`` when given.
    """
    taken_by_day: dict[date, set[tuple[uuid.UUID, str]]] = {}
    for entry in logs:
        if entry.status is IntakeStatus.TAKEN:
            taken_by_day.setdefault(entry.dose_date, set()).add(
                (entry.schedule_id, entry.dose_time)
            )

    def expected_on(
        current: date, candidates: Sequence[MedicationSchedule] = schedules
    ) -> list[tuple[uuid.UUID, str]]:
        return [
            (schedule.id, clock)
            for schedule in candidates
            if covers_day(schedule, current, tz)
            for clock in schedule.scheduled_times
        ]

    streak = 0
    today_expected = expected_on(
        day, schedules if day_schedules is None else day_schedules
    )
    if _is_compliant(today_expected, taken_by_day.get(day, set())):
        streak += 1

    for offset in range(1, lookback_days + 1):
        current = day - timedelta(days=offset)
        expected = expected_on(current)
        if not expected:
            continue
        if not _is_compliant(expected, taken_by_day.get(current, set())):
            break
        streak += 1
    return streak


async def _patient_schedules(
    session: AsyncSession, patient_id: uuid.UUID
) -> list[MedicationSchedule]:
    result = await session.execute(
        select(MedicationSchedule)
        .where(MedicationSchedule.patient_id == patient_id)
        .order_by(MedicationSchedule.created_at.asc(), MedicationSchedule.id.asc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _patient_logs(
    session: AsyncSession, patient_id: uuid.UUID, first_day: date, last_day: date
) -> list[IntakeLogEntry]:
    result = await session.execute(
        select(IntakeLogEntry)
        .join(MedicationSchedule, IntakeLogEntry.schedule_id == MedicationSchedule.id)
        .where(
            MedicationSchedule.patient_id == patient_id,
            IntakeLogEntry.dose_date >= first_day,
            IntakeLogEntry.dose_date <= last_day,
        )
    )
    return list(result.scalars().all())


async def project_day(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    day: date,
    now: datetime,
    tz: ZoneInfo,
    lookback_days: int = 365,
) -> DayProjection:
    """Build the dose list, upcoming doses and stats for ``day``."""
    await schedule_service.deactivate_expired(session, patient_id=patient_id, now=now)

    schedules = await _patient_schedules(session, patient_id)
    active = [
        schedule
        for schedule in schedules
        if schedule.is_active and covers_day(schedule, day, tz)
    ]
    logs = await _patient_logs(
        session, patient_id, day - timedelta(days=lookback_days), day
    )

    doses = build_day_doses(active, logs, day, now, tz)
    streak = compute_streak(
        schedules,
        logs,
        day,
        tz,
        lookback_days=lookback_days,
        day_schedules=active,
    )
    return DayProjection(
        date=day,
        doses=doses,
        stats=summarize(active, doses, streak=streak),
        upcoming=[dose for dose in doses if dose.status is DoseStatus.PENDING],
    )
