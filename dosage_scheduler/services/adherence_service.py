"""Adherence history and weekday statistics from intake logs."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from zoneinfo import ZoneInfo

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.core.clock import coerce_utc
from dosage_scheduler.models.medication_schedule import (
    IntakeLogEntry,
    IntakeStatus,
    MedicationSchedule,
)
from dosage_scheduler.services.duration_service import add_months

WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


class HistoryRange(str, enum.Enum):
    """Supported history windows."""

    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    LAST_90_DAYS = "90days"
    ALL = "all"


_RANGE_DAYS = {
    HistoryRange.LAST_7_DAYS: 7,
    HistoryRange.LAST_30_DAYS: 30,
    HistoryRange.LAST_90_DAYS: 90,
}


@dataclass(frozen=True)
class HistoryEntry:
    schedule_id: uuid.UUID
    medication_name: str
    dosage: str
    time: str
    status: IntakeStatus
    timestamp: datetime
    date: date
    notes: str | None = None

    @property
    def id(self) -> str:
        return f"{self.schedule_id}-{self.time}-{int(self.timestamp.timestamp())}"


@dataclass
class WeekdayStats:
    total_doses: int = 0
    taken_doses: int = 0
    missed_doses: int = 0

    @property
    def adherence_rate(self) -> int:
        return adherence_percent(self.taken_doses, self.total_doses, empty=0)


@dataclass
class AdherenceHistory:
    entries: list[HistoryEntry]
    weekly_stats: dict[str, WeekdayStats]
    start: datetime
    end: datetime
    range: HistoryRange = field(default=HistoryRange.LAST_7_DAYS)


def adherence_percent(taken: int, total: int, *, empty: int) -> int:
    """Percentage of ``total`` that was taken, rounded half up; ``empty`` when total is 0."""
    if total <= 0:
        return empty
    ratio = Decimal(taken) * 100 / Decimal(total)
    return int(ratio.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def weekday_label(day: date) -> str:
    # date.weekday() counts from Monday
    return WEEKDAY_LABELS[(day.weekday() + 1) % 7]


def resolve_window(
    history_range: HistoryRange, now: datetime, tz: ZoneInfo
) -> tuple[datetime, datetime]:
    """Return the local ``[start, end]`` bounds of a history window."""
    local_now = coerce_utc(now).astimezone(tz)
    end = datetime.combine(local_now.date(), time.max, tzinfo=tz)
    if history_range is HistoryRange.ALL:
        start_day = add_months(local_now, -12).date()
    else:
        start_day = local_now.date() - timedelta(days=_RANGE_DAYS[history_range])
    start = datetime.combine(start_day, time.min, tzinfo=tz)
    return start, end


def aggregate_by_weekday(entries: list[HistoryEntry]) -> dict[str, WeekdayStats]:
    """Bucket entries by weekday label.

    Entries from different calendar weeks that share a weekday land in the
    same bucket.
    """
    stats: dict[str, WeekdayStats] = {}
    for entry in entries:
        bucket = stats.setdefault(weekday_label(entry.date), WeekdayStats())
        bucket.total_doses += 1
        if entry.status is IntakeStatus.TAKEN:
            bucket.taken_doses += 1
        elif entry.status is IntakeStatus.MISSED:
            bucket.missed_doses += 1
    return {label: stats[label] for label in WEEKDAY_LABELS if label in stats}


def sort_entries(entries: list[HistoryEntry]) -> list[HistoryEntry]:
    """Most recent first: date descending, then time of day descending."""
    return sorted(entries, key=lambda entry: (entry.date, entry.time), reverse=True)


async def history(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    history_range: HistoryRange,
    now: datetime,
    tz: ZoneInfo,
) -> AdherenceHistory:
    """Collect the patient's intake entries logged inside the window."""
    start, end = resolve_window(history_range, now, tz)
    stmt = (
        select(
            IntakeLogEntry,
            MedicationSchedule.medication_name,
            MedicationSchedule.dosage,
        )
        .join(MedicationSchedule, IntakeLogEntry.schedule_id == MedicationSchedule.id)
        .where(
            and_(
                MedicationSchedule.patient_id == patient_id,
                IntakeLogEntry.logged_at >= start.astimezone(UTC),
                IntakeLogEntry.logged_at <= end.astimezone(UTC),
            )
        )
    )
    result = await session.execute(stmt)

    entries: list[HistoryEntry] = []
    for log, medication_name, dosage in result.all():
        logged_local = coerce_utc(log.logged_at).astimezone(tz)
        entries.append(
            HistoryEntry(
                schedule_id=log.schedule_id,
                medication_name=medication_name,
                dosage=dosage,
                time=log.dose_time,
                status=log.status,
                timestamp=logged_local,
                date=log.dose_date,
                notes=log.notes,
            )
        )

    entries = sort_entries(entries)
    return AdherenceHistory(
        entries=entries,
        weekly_stats=aggregate_by_weekday(entries),
        start=start,
        end=end,
        range=history_range,
    )
