"""Frequency labels, default dose times and clock-time parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import time

from dosage_scheduler.models.medication_schedule import Frequency


@dataclass(frozen=True)
class FrequencyRule:
    """How many doses a frequency implies and when they default to."""

    times_per_day: int
    default_times: tuple[str, ...]


FREQUENCY_RULES: dict[Frequency, FrequencyRule] = {
    Frequency.ONCE_DAILY: FrequencyRule(1, ("08:00",)),
    Frequency.TWICE_DAILY: FrequencyRule(2, ("08:00", "20:00")),
    Frequency.THREE_TIMES_DAILY: FrequencyRule(3, ("08:00", "14:00", "20:00")),
    Frequency.FOUR_TIMES_DAILY: FrequencyRule(4, ("08:00", "12:00", "16:00", "20:00")),
    Frequency.EVERY_12_HOURS: FrequencyRule(2, ("08:00", "20:00")),
    Frequency.EVERY_8_HOURS: FrequencyRule(3, ("08:00", "16:00", "00:00")),
    Frequency.EVERY_6_HOURS: FrequencyRule(4, ("06:00", "12:00", "18:00", "00:00")),
    # as-needed doses are never auto-scheduled; the time is kept for display only
    Frequency.AS_NEEDED: FrequencyRule(0, ("08:00",)),
}

FALLBACK_RULE = FrequencyRule(1, ("08:00",))

_CLOCK_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_EVERY_HOURS_RE = re.compile(r"every\s*(\d+)\s*(?:h|hr|hrs|hour|hours)\b")

_HOURLY_LABELS = {
    12: Frequency.EVERY_12_HOURS,
    8: Frequency.EVERY_8_HOURS,
    6: Frequency.EVERY_6_HOURS,
}

# checked in order; abbreviations are matched as whole words
_KEYWORD_LABELS: tuple[tuple[tuple[str, ...], Frequency], ...] = (
    (("as needed", "as_needed", "prn", "sos", "when required"), Frequency.AS_NEEDED),
    (("four times", "4 times", "4x", "qid", "qds"), Frequency.FOUR_TIMES_DAILY),
    (("three times", "thrice", "3 times", "3x", "tid", "tds"), Frequency.THREE_TIMES_DAILY),
    (("twice", "two times", "2 times", "2x", "bid", "bd"), Frequency.TWICE_DAILY),
    (("once", "one time", "1 time", "1x", "daily", "od", "qd"), Frequency.ONCE_DAILY),
)


def resolve_frequency(label: str | Frequency | None) -> FrequencyRule:
    """Return the dose count and default times for a frequency label.

    Unknown labels resolve to the single 08:00 fallback instead of failing.
    """
    try:
        frequency = Frequency(label)
    except ValueError:
        return FALLBACK_RULE
    return FREQUENCY_RULES[frequency]


def normalize_frequency(text: str | None) -> Frequency | None:
    """Map a free-text frequency ("Twice daily", "BID", "every 8 hours") to a label."""
    if not text:
        return None
    lowered = text.strip().lower()
    try:
        return Frequency(lowered.replace(" ", "_").replace("-", "_"))
    except ValueError:
        pass

    hourly = _EVERY_HOURS_RE.search(lowered)
    if hourly:
        return _HOURLY_LABELS.get(int(hourly.group(1)))

    for keywords, frequency in _KEYWORD_LABELS:
        for keyword in keywords:
            if re.search(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", lowered):
                return frequency
    return None


def parse_clock_time(value: str) -> time:
    """Parse a 24-hour ``HH:MM`` string, raising ValueError when malformed."""
    match = _CLOCK_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Invalid clock time {value!r}; expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def normalize_times(values: list[str]) -> list[str]:
    """Validate clock times, zero-pad them and drop repeats while keeping order."""
    seen: list[str] = []
    for raw in values:
        parts = str(raw).strip().split(":")
        if len(parts) == 2 and all(part.isdigit() for part in parts):
            raw = f"{int(parts[0]):02d}:{int(parts[1]):02d}"
        parsed = parse_clock_time(raw)
        formatted = parsed.strftime("%H:%M")
        if formatted not in seen:
            seen.append(formatted)
    return seen


def resolve_schedule_times(
    frequency: Frequency,
    *,
    specific_times: list[str] | None = None,
) -> tuple[int, list[str]]:
    """Apply explicit times on top of the frequency defaults.

    Explicit times always win over the defaults; for anything but as-needed
    courses the dose count follows the number of explicit times.
    """
    rule = resolve_frequency(frequency)
    if specific_times:
        times = normalize_times(specific_times)
        if frequency is Frequency.AS_NEEDED:
            return 0, times
        return len(times), times

    return rule.times_per_day, list(rule.default_times)
