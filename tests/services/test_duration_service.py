"""Tests for course end dates and duration parsing."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from dosage_scheduler.models import DurationUnit
from dosage_scheduler.services import duration_service

START = datetime(2026, 1, 31, 9, 15, tzinfo=UTC)


def test_days_and_weeks_add_exact_day_counts() -> None:
    assert duration_service.calculate_end_date(START, 10, DurationUnit.DAYS) == datetime(
        2026, 2, 10, 9, 15, tzinfo=UTC
    )
    assert duration_service.calculate_end_date(START, 2, "weeks") == datetime(
        2026, 2, 14, 9, 15, tzinfo=UTC
    )


def test_months_clamp_to_last_day_of_month() -> None:
    assert duration_service.calculate_end_date(START, 1, DurationUnit.MONTHS) == datetime(
        2026, 2, 28, 9, 15, tzinfo=UTC
    )
    leap_start = datetime(2028, 1, 31, tzinfo=UTC)
    assert duration_service.calculate_end_date(leap_start, 1, DurationUnit.MONTHS) == datetime(
        2028, 2, 29, tzinfo=UTC
    )
    assert duration_service.calculate_end_date(START, 13, DurationUnit.MONTHS) == datetime(
        2027, 2, 28, 9, 15, tzinfo=UTC
    )


def test_ongoing_has_no_end_date() -> None:
    assert duration_service.calculate_end_date(START, 0, DurationUnit.ONGOING) is None


def test_add_months_goes_backwards_across_years() -> None:
    assert duration_service.add_months(datetime(2026, 3, 31, tzinfo=UTC), -13) == datetime(
        2025, 2, 28, tzinfo=UTC
    )


@pytest.mark.parametrize(
    ("text", "unit", "expected"),
    [
        ("7 days", None, (7, DurationUnit.DAYS)),
        ("1 week", None, (1, DurationUnit.WEEKS)),
        ("2 wks", None, (2, DurationUnit.WEEKS)),
        ("3 months", None, (3, DurationUnit.MONTHS)),
        ("6mo", None, (6, DurationUnit.MONTHS)),
        ("10d", None, (10, DurationUnit.DAYS)),
        ("14", None, (14, DurationUnit.DAYS)),
        (4, "weeks", (4, DurationUnit.WEEKS)),
        ("for 5 days then stop", None, (5, DurationUnit.DAYS)),
        ("Ongoing", None, (0, DurationUnit.ONGOING)),
        ("lifelong", None, (0, DurationUnit.ONGOING)),
        ("30", "ongoing", (0, DurationUnit.ONGOING)),
    ],
)
def test_parse_duration_text(
    text: str | int, unit: str | None, expected: tuple[int, DurationUnit]
) -> None:
    assert duration_service.parse_duration_text(text, unit) == expected


@pytest.mark.parametrize("text", [None, "", "until better", "0 days"])
def test_unparseable_duration_defaults_to_a_week(text: str | None) -> None:
    assert duration_service.parse_duration_text(text) == (7, DurationUnit.DAYS)


@pytest.mark.parametrize(
    ("text", "unit", "expected"),
    [
        (2, DurationUnit.MONTHS, (2, DurationUnit.MONTHS)),
        ("3", DurationUnit.WEEKS, (3, DurationUnit.WEEKS)),
        (None, DurationUnit.ONGOING, (0, DurationUnit.ONGOING)),
        ("10 days", DurationUnit.ONGOING, (0, DurationUnit.ONGOING)),
    ],
)
def test_parse_duration_accepts_unit_members(
    text: str | int | None, unit: DurationUnit, expected: tuple[int, DurationUnit]
) -> None:
    assert duration_service.parse_duration_text(text, unit) == expected
