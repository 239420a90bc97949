"""Clock and time zone helpers for dose status computation."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dosage_scheduler.core.config import get_settings

logger = logging.getLogger(__name__)


class SystemClock:
    """Reads the wall clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock pinned to a single instant, used by tests and replays."""

    def __init__(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant


def resolve_timezone(name: str | None = None) -> ZoneInfo:
    """Return the configured scheduler time zone, falling back to UTC."""
    tz_name = name or get_settings().scheduler_timezone
    try:
        return ZoneInfo(tz_name)
    except ZoneInfoNotFoundError:  # pragma: no cover - depends on system tz database
        logger.warning("Unknown scheduler timezone %s; using UTC", tz_name)
        return ZoneInfo("UTC")


def coerce_utc(dt: datetime) -> datetime:
    """Attach UTC to naive values (SQLite drops offsets) or convert to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)
