"""ORM models package export."""

from dosage_scheduler.models.audit_event import AuditEvent
from dosage_scheduler.models.hospital import Hospital
from dosage_scheduler.models.medication_schedule import (
    DurationUnit,
    Frequency,
    IntakeLogEntry,
    IntakeStatus,
    MedicationSchedule,
    ScheduleSource,
)
from dosage_scheduler.models.prescription import Prescription, PrescriptionStatus
from dosage_scheduler.models.user import User, UserRole, UserStatus

__all__ = [
    "AuditEvent",
    "DurationUnit",
    "Frequency",
    "Hospital",
    "IntakeLogEntry",
    "IntakeStatus",
    "MedicationSchedule",
    "Prescription",
    "PrescriptionStatus",
    "ScheduleSource",
    "User",
    "UserRole",
    "UserStatus",
]
