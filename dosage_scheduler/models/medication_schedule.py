"""Medication schedule and intake log models."""
from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dosage_scheduler.db.base import Base
from dosage_scheduler.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from dosage_scheduler.models.user import User


class Frequency(str, enum.Enum):
    """Canonical dosing frequency labels."""

    ONCE_DAILY = "once_daily"
    TWICE_DAILY = "twice_daily"
    THREE_TIMES_DAILY = "three_times_daily"
    FOUR_TIMES_DAILY = "four_times_daily"
    EVERY_12_HOURS = "every_12_hours"
    EVERY_8_HOURS = "every_8_hours"
    EVERY_6_HOURS = "every_6_hours"
    AS_NEEDED = "as_needed"


class DurationUnit(str, enum.Enum):
    """Units a course duration can be expressed in."""

    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    ONGOING = "ongoing"


class ScheduleSource(str, enum.Enum):
    """Where a schedule came from."""

    DOCTOR_PRESCRIPTION = "doctor_prescription"
    MANUAL = "manual"


class IntakeStatus(str, enum.Enum):
    """Recorded outcome of a dose."""

    TAKEN = "taken"
    MISSED = "missed"
    SKIPPED = "skipped"


class MedicationSchedule(TimestampMixin, Base):
    """A patient's course of one medication."""

    __tablename__ = "medication_schedules"
    __table_args__ = (
        # one active doctor-issued course per medication and patient
        Index(
            "uq_medication_schedules_active_prescription",
            "patient_id",
            "medication_name",
            unique=True,
            sqlite_where=text("is_active = 1 AND source = 'DOCTOR_PRESCRIPTION'"),
            postgresql_where=text("is_active AND source = 'DOCTOR_PRESCRIPTION'"),
        ),
        Index("ix_medication_schedules_patient_active", "patient_id", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    medication_name: Mapped[str] = mapped_column(String(255), nullable=False)
    dosage: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    instructions: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    frequency: Mapped[Frequency] = mapped_column(Enum(Frequency), nullable=False)
    times_per_day: Mapped[int] = mapped_column(Integer, nullable=False)
    specific_times: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=lambda: [])

    duration_value: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_unit: Mapped[DurationUnit] = mapped_column(Enum(DurationUnit), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    source: Mapped[ScheduleSource] = mapped_column(Enum(ScheduleSource), nullable=False)
    source_record_id: Mapped[str | None] = mapped_column(String(64))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    deactivated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    reminder_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reminder_minutes_before: Mapped[int] = mapped_column(Integer, nullable=False, default=15)

    taken_doses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    missed_doses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_doses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    adherence_rate: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    patient: Mapped["User"] = relationship("User", back_populates="schedules")
    intake_log: Mapped[list["IntakeLogEntry"]] = relationship(
        "IntakeLogEntry",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="IntakeLogEntry.logged_at",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def scheduled_times(self) -> list[str]:
        """Clock times that produce dose instances; empty for as-needed courses."""
        if self.times_per_day <= 0:
            return []
        return list(self.specific_times or [])


class IntakeLogEntry(Base):
    """Append-only record of one dose outcome."""

    __tablename__ = "intake_log_entries"
    __table_args__ = (
        UniqueConstraint(
            "schedule_id", "dose_date", "dose_time", name="uq_intake_log_dose"
        ),
        Index("ix_intake_log_entries_logged_at", "logged_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    schedule_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("medication_schedules.id", ondelete="CASCADE"), nullable=False
    )
    dose_date: Mapped[date] = mapped_column(Date, nullable=False)
    dose_time: Mapped[str] = mapped_column(String(5), nullable=False)
    status: Mapped[IntakeStatus] = mapped_column(Enum(IntakeStatus), nullable=False)
    logged_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1024))

    schedule: Mapped["MedicationSchedule"] = relationship(
        "MedicationSchedule", back_populates="intake_log"
    )
