"""Medication scheduler request and response schemas."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dosage_scheduler.core.clock import coerce_utc
from dosage_scheduler.models.medication_schedule import (
    DurationUnit,
    Frequency,
    IntakeStatus,
    ScheduleSource,
)
from dosage_scheduler.services.frequency_service import normalize_times


class ImportMedication(BaseModel):
    """A prescribed medication handed to the scheduler."""

    medication: str
    dosage: str = ""
    frequency: str | None = None
    duration: str | int | None = None
    duration_unit: DurationUnit | None = Field(default=None, alias="durationUnit")
    specific_times: list[str] | None = Field(default=None, alias="specificTimes")
    instructions: str = ""

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("specific_times")
    @classmethod
    def _validate_times(cls, value: list[str] | None) -> list[str] | None:
        if not value:
            return None
        return normalize_times(value)


class ImportRequest(BaseModel):
    """Batch of medications to schedule."""

    medications: list[ImportMedication] = Field(default_factory=list)
    source_record_id: str | None = Field(default=None, alias="sourceRecordId")

    model_config = ConfigDict(populate_by_name=True)


class ImportResponse(BaseModel):
    success: bool
    schedule_ids: list[uuid.UUID]
    count: int
    skipped: list[str]
    message: str


class IntakeEntryRead(BaseModel):
    """Serialized intake log entry."""

    id: uuid.UUID
    schedule_id: uuid.UUID
    dose_date: date
    dose_time: str
    status: IntakeStatus
    logged_at: datetime
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("logged_at")
    @classmethod
    def _logged_at_utc(cls, value: datetime) -> datetime:
        return coerce_utc(value)


class MarkTakenRequest(BaseModel):
    """Record the outcome of one of today's doses."""

    schedule_id: uuid.UUID = Field(alias="scheduleId")
    time: str | None = None
    status: IntakeStatus = IntakeStatus.TAKEN
    notes: str | None = Field(default=None, max_length=1024)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("time")
    @classmethod
    def _validate_time(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return normalize_times([value])[0]


class MarkTakenResponse(BaseModel):
    success: bool = True
    message: str
    entry: IntakeEntryRead


class DoseInstanceRead(BaseModel):
    """One scheduled dose of the projected day."""

    id: str
    schedule_id: uuid.UUID
    medication_name: str
    dosage: str
    instructions: str
    date: date
    time: str
    status: str
    reminder_enabled: bool = False
    logged_at: datetime | None = None
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class DayStatsRead(BaseModel):
    total_medications: int
    total_doses: int
    taken_count: int
    missed_count: int
    skipped_count: int
    pending_count: int
    adherence_rate: int
    streak: int

    model_config = ConfigDict(from_attributes=True)


class TodayResponse(BaseModel):
    success: bool = True
    date: date
    schedule: list[DoseInstanceRead]
    upcoming: list[DoseInstanceRead]
    stats: DayStatsRead


class HistoryEntryRead(BaseModel):
    """A logged dose inside the history window."""

    id: str
    schedule_id: uuid.UUID
    medication_name: str
    dosage: str
    time: str
    status: IntakeStatus
    timestamp: datetime
    date: date
    notes: str | None = None

    model_config = ConfigDict(from_attributes=True)


class WeekdayStatsRead(BaseModel):
    total_doses: int
    taken_doses: int
    missed_doses: int
    adherence_rate: int

    model_config = ConfigDict(from_attributes=True)


class DateRange(BaseModel):
    start: datetime
    end: datetime


class HistoryResponse(BaseModel):
    success: bool = True
    history: list[HistoryEntryRead]
    weekly_stats: dict[str, WeekdayStatsRead]
    date_range: DateRange


class ScheduleRead(BaseModel):
    """Serialized medication schedule."""

    id: uuid.UUID
    patient_id: uuid.UUID
    medication_name: str
    dosage: str
    instructions: str
    frequency: Frequency
    times_per_day: int
    specific_times: list[str]
    duration_value: int
    duration_unit: DurationUnit
    start_date: datetime
    end_date: datetime | None = None
    source: ScheduleSource
    source_record_id: str | None = None
    is_active: bool
    deactivated_at: datetime | None = None
    reminder_enabled: bool
    reminder_minutes_before: int
    taken_doses: int
    missed_doses: int
    skipped_doses: int
    adherence_rate: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator(
        "start_date", "end_date", "deactivated_at", "created_at", "updated_at"
    )
    @classmethod
    def _timestamps_utc(cls, value: datetime | None) -> datetime | None:
        # SQLite hands back naive values
        return coerce_utc(value) if value is not None else None


class ScheduleListResponse(BaseModel):
    success: bool = True
    data: list[ScheduleRead]


class ScheduleResponse(BaseModel):
    success: bool = True
    data: ScheduleRead


class ManualScheduleCreate(BaseModel):
    """Patient-entered medication."""

    medication_name: str = Field(min_length=1, max_length=255, alias="medicationName")
    dosage: str = ""
    frequency: str | None = Frequency.ONCE_DAILY.value
    duration: str | int | None = None
    duration_unit: DurationUnit | None = Field(default=None, alias="durationUnit")
    specific_times: list[str] | None = Field(default=None, alias="specificTimes")
    instructions: str = ""

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("specific_times")
    @classmethod
    def _validate_times(cls, value: list[str] | None) -> list[str] | None:
        if not value:
            return None
        return normalize_times(value)


class ReminderUpdate(BaseModel):
    reminder_enabled: bool = Field(alias="reminderEnabled")
    reminder_minutes_before: int | None = Field(
        default=None, ge=0, le=24 * 60, alias="reminderMinutesBefore"
    )

    model_config = ConfigDict(populate_by_name=True)


class SimpleResponse(BaseModel):
    success: bool = True
    message: str | None = None
