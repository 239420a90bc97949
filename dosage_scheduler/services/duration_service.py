"""Course duration parsing and end-date arithmetic."""

from __future__ import annotations

import calendar
import re
from datetime import datetime, timedelta

from dosage_scheduler.models.medication_schedule import DurationUnit

DEFAULT_DURATION: tuple[int, DurationUnit] = (7, DurationUnit.DAYS)

_ONGOING_WORDS = ("ongoing", "continuous", "continue", "indefinite", "lifelong", "long term")
_DURATION_RE = re.compile(
    r"(\d+)\s*(days?|d|weeks?|wks?|w|months?|mos?|mo)?\b", re.IGNORECASE
)
_UNIT_PREFIXES = (
    ("d", DurationUnit.DAYS),
    ("w", DurationUnit.WEEKS),
    ("m", DurationUnit.MONTHS),
)


def add_months(start: datetime, months: int) -> datetime:
    """Shift ``start`` by calendar months, clamping to the target month's last day."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def calculate_end_date(
    start: datetime, value: int, unit: DurationUnit | str
) -> datetime | None:
    """Return when a course starting at ``start`` ends; None for ongoing courses."""
    unit = DurationUnit(unit)
    if unit is DurationUnit.ONGOING:
        return None
    if unit is DurationUnit.DAYS:
        return start + timedelta(days=value)
    if unit is DurationUnit.WEEKS:
        return start + timedelta(days=value * 7)
    return add_months(start, value)


def _unit_from_token(token: str | None) -> DurationUnit | None:
    if not token:
        return None
    lowered = token.lower()
    for prefix, unit in _UNIT_PREFIXES:
        if lowered.startswith(prefix):
            return unit
    return None


def parse_duration_text(
    text: str | int | None, unit: DurationUnit | str | None = None
) -> tuple[int, DurationUnit]:
    """Extract ``(value, unit)`` from strings such as "7 days" or "2 weeks".

    A bare number takes ``unit`` (or days). Text that carries no usable number
    falls back to seven days.
    """
    explicit_unit = None
    if unit:
        try:
            explicit_unit = (
                unit if isinstance(unit, DurationUnit) else DurationUnit(str(unit).lower())
            )
        except ValueError:
            explicit_unit = None
    if explicit_unit is DurationUnit.ONGOING:
        return 0, DurationUnit.ONGOING

    if text is None:
        return DEFAULT_DURATION
    raw = str(text).strip().lower()
    if any(word in raw for word in _ONGOING_WORDS):
        return 0, DurationUnit.ONGOING

    match = _DURATION_RE.search(raw)
    if match is None:
        return DEFAULT_DURATION
    value = int(match.group(1))
    if value <= 0:
        return DEFAULT_DURATION
    parsed_unit = _unit_from_token(match.group(2))
    return value, parsed_unit or explicit_unit or DurationUnit.DAYS
