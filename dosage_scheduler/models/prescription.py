"""Prescription records issued by doctors."""
from __future__ import annotations

import enum
import uuid

from sqlalchemy import JSON, Boolean, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from dosage_scheduler.db.base import Base
from dosage_scheduler.models.mixins import TimestampMixin


class PrescriptionStatus(str, enum.Enum):
    """Lifecycle of a prescription."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Prescription(TimestampMixin, Base):
    """A medication a doctor prescribed to a patient.

    The scheduler reads these records and only ever writes
    ``imported_to_scheduler``.
    """

    __tablename__ = "prescriptions"
    __table_args__ = (Index("ix_prescriptions_patient_id", "patient_id"),)

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    hospital_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("hospitals.id", ondelete="SET NULL")
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    doctor_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    doctor_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    medication_name: Mapped[str] = mapped_column(String(255), nullable=False)
    dosage: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    frequency: Mapped[str] = mapped_column(String(64), nullable=False, default="once_daily")
    specific_times: Mapped[list[str] | None] = mapped_column(JSON)
    duration: Mapped[str] = mapped_column(String(64), nullable=False, default="7 days")
    instructions: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    status: Mapped[PrescriptionStatus] = mapped_column(
        Enum(PrescriptionStatus), nullable=False, default=PrescriptionStatus.ACTIVE
    )
    imported_to_scheduler: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
