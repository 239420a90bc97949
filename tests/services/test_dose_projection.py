"""Tests for daily dose projection, summary stats and streaks."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from dosage_scheduler.models import IntakeLogEntry, IntakeStatus, MedicationSchedule, ScheduleSource
from dosage_scheduler.services import dose_projection_service, schedule_service
from dosage_scheduler.services.adherence_service import adherence_percent
from dosage_scheduler.services.dose_projection_service import DoseStatus

UTC_ZONE = ZoneInfo("UTC")
NOW = datetime(2026, 3, 2, 14, 0, tzinfo=UTC)
TODAY = date(2026, 3, 2)


def _schedule(
    frequency: str,
    *,
    started: datetime,
    duration: str = "ongoing",
    times: list[str] | None = None,
    name: str = "Metformin",
) -> MedicationSchedule:
    return schedule_service.build_schedule(
        patient_id=uuid.uuid4(),
        medication_name=name,
        dosage="500mg",
        frequency=frequency,
        duration=duration,
        duration_unit=None,
        specific_times=times,
        instructions="",
        source=ScheduleSource.MANUAL,
        source_record_id=None,
        now=started,
    )


def _log(
    schedule: MedicationSchedule,
    day: date,
    clock: str,
    status: IntakeStatus = IntakeStatus.TAKEN,
) -> IntakeLogEntry:
    return IntakeLogEntry(
        id=uuid.uuid4(),
        schedule_id=schedule.id,
        dose_date=day,
        dose_time=clock,
        status=status,
        logged_at=datetime.combine(day, datetime.min.time(), tzinfo=UTC) + timedelta(hours=12),
    )


def _at(day: date, hour: int = 7) -> datetime:
    return datetime(day.year, day.month, day.day, hour, tzinfo=UTC)


def test_unlogged_doses_are_missed_before_now_and_pending_after() -> None:
    schedule = _schedule("twice_daily", started=_at(TODAY))
    doses = dose_projection_service.build_day_doses([schedule], [], TODAY, NOW, UTC_ZONE)
    assert [(dose.time, dose.status) for dose in doses] == [
        ("08:00", DoseStatus.MISSED),
        ("20:00", DoseStatus.PENDING),
    ]
    assert doses[0].id == f"{schedule.id}-08:00"


def test_logged_status_wins_over_clock() -> None:
    schedule = _schedule("twice_daily", started=_at(TODAY))
    logs = [
        _log(schedule, TODAY, "08:00"),
        _log(schedule, TODAY, "20:00", IntakeStatus.SKIPPED),
        _log(schedule, TODAY - timedelta(days=1), "08:00"),
    ]
    doses = dose_projection_service.build_day_doses([schedule], logs, TODAY, NOW, UTC_ZONE)
    assert [dose.status for dose in doses] == [DoseStatus.TAKEN, DoseStatus.SKIPPED]
    assert doses[0].logged_at is not None


def test_doses_sorted_by_time_with_ties_in_schedule_order() -> None:
    first = _schedule("twice_daily", started=_at(TODAY), name="First")
    second = _schedule("three_times_daily", started=_at(TODAY), name="Second")
    doses = dose_projection_service.build_day_doses(
        [first, second], [], TODAY, NOW, UTC_ZONE
    )
    assert [(dose.medication_name, dose.time) for dose in doses] == [
        ("First", "08:00"),
        ("Second", "08:00"),
        ("Second", "14:00"),
        ("First", "20:00"),
        ("Second", "20:00"),
    ]


def test_dose_at_exactly_now_is_pending() -> None:
    schedule = _schedule("three_times_daily", started=_at(TODAY))
    doses = dose_projection_service.build_day_doses([schedule], [], TODAY, NOW, UTC_ZONE)
    assert doses[1].time == "14:00"
    assert doses[1].status is DoseStatus.PENDING


def test_days_outside_the_course_have_no_doses() -> None:
    schedule = _schedule("once_daily", started=_at(TODAY), duration="3 days")
    project = dose_projection_service.build_day_doses
    assert project([schedule], [], TODAY - timedelta(days=1), NOW, UTC_ZONE) == []
    assert len(project([schedule], [], TODAY + timedelta(days=3), NOW, UTC_ZONE)) == 1
    assert project([schedule], [], TODAY + timedelta(days=4), NOW, UTC_ZONE) == []


def test_as_needed_schedules_produce_no_doses() -> None:
    schedule = _schedule("as_needed", started=_at(TODAY))
    assert dose_projection_service.build_day_doses([schedule], [], TODAY, NOW, UTC_ZONE) == []


def test_status_uses_the_scheduler_time_zone() -> None:
    new_york = ZoneInfo("America/New_York")
    schedule = _schedule("twice_daily", started=_at(TODAY - timedelta(days=1)))
    # 14:00 UTC is 09:00 in New York
    doses = dose_projection_service.build_day_doses([schedule], [], TODAY, NOW, new_york)
    assert [dose.status for dose in doses] == [DoseStatus.MISSED, DoseStatus.PENDING]

    early = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
    doses = dose_projection_service.build_day_doses([schedule], [], TODAY, early, new_york)
    assert [dose.status for dose in doses] == [DoseStatus.PENDING, DoseStatus.PENDING]


def test_summary_counts_and_rate() -> None:
    schedule = _schedule("four_times_daily", started=_at(TODAY))
    logs = [
        _log(schedule, TODAY, "08:00"),
        _log(schedule, TODAY, "12:00"),
        _log(schedule, TODAY, "16:00"),
        _log(schedule, TODAY, "20:00"),
    ]
    doses = dose_projection_service.build_day_doses([schedule], logs[:3], TODAY, NOW, UTC_ZONE)
    stats = dose_projection_service.summarize([schedule], doses)
    assert stats.total_medications == 1
    assert stats.total_doses == 4
    assert stats.taken_count == 3
    assert stats.pending_count == 1
    assert stats.adherence_rate == 75

    doses = dose_projection_service.build_day_doses([schedule], logs, TODAY, NOW, UTC_ZONE)
    assert dose_projection_service.summarize([schedule], doses).adherence_rate == 100


def test_summary_of_empty_day_reports_full_adherence() -> None:
    stats = dose_projection_service.summarize([], [])
    assert stats.total_doses == 0
    assert stats.adherence_rate == 100


@pytest.mark.parametrize(
    ("taken", "total", "expected"),
    [(1, 8, 13), (2, 3, 67), (1, 3, 33), (5, 200, 3), (0, 4, 0), (0, 0, 100)],
)
def test_adherence_rounds_half_up(taken: int, total: int, expected: int) -> None:
    assert adherence_percent(taken, total, empty=100) == expected


def test_streak_counts_consecutive_fully_taken_days() -> None:
    schedule = _schedule("once_daily", started=_at(TODAY - timedelta(days=10)))
    logs = [_log(schedule, TODAY - timedelta(days=offset), "08:00") for offset in (1, 2, 3)]
    streak = dose_projection_service.compute_streak([schedule], logs, TODAY, UTC_ZONE)
    assert streak == 3

    logs.append(_log(schedule, TODAY, "08:00"))
    assert dose_projection_service.compute_streak([schedule], logs, TODAY, UTC_ZONE) == 4


def test_streak_ignores_incomplete_today_and_breaks_on_partial_day() -> None:
    schedule = _schedule("twice_daily", started=_at(TODAY - timedelta(days=5)))
    logs = [
        _log(schedule, TODAY, "08:00"),
        _log(schedule, TODAY - timedelta(days=1), "08:00"),
        _log(schedule, TODAY - timedelta(days=1), "20:00"),
        _log(schedule, TODAY - timedelta(days=2), "08:00"),
    ]
    assert dose_projection_service.compute_streak([schedule], logs, TODAY, UTC_ZONE) == 1


def test_streak_skips_days_without_scheduled_doses() -> None:
    finished = _schedule(
        "once_daily", started=_at(TODAY - timedelta(days=10)), duration="4 days", name="Old"
    )
    current = _schedule("once_daily", started=_at(TODAY - timedelta(days=3)), name="New")
    logs = [
        _log(finished, TODAY - timedelta(days=6), "08:00"),
        _log(finished, TODAY - timedelta(days=7), "08:00"),
        _log(current, TODAY - timedelta(days=1), "08:00"),
        _log(current, TODAY - timedelta(days=2), "08:00"),
        _log(current, TODAY - timedelta(days=3), "08:00"),
    ]
    # days -4 and -5 have nothing scheduled; day -8 was not taken
    streak = dose_projection_service.compute_streak(
        [finished, current], logs, TODAY, UTC_ZONE
    )
    assert streak == 5


def test_streak_is_zero_without_any_schedule() -> None:
    assert dose_projection_service.compute_streak([], [], TODAY, UTC_ZONE) == 0


def test_missed_or_skipped_entries_break_the_streak() -> None:
    schedule = _schedule("once_daily", started=_at(TODAY - timedelta(days=5)))
    logs = [
        _log(schedule, TODAY - timedelta(days=1), "08:00"),
        _log(schedule, TODAY - timedelta(days=2), "08:00", IntakeStatus.SKIPPED),
        _log(schedule, TODAY - timedelta(days=3), "08:00"),
    ]
    assert dose_projection_service.compute_streak([schedule], logs, TODAY, UTC_ZONE) == 1
