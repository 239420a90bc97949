"""Service layer exports."""
from dosage_scheduler.services import (
    adherence_service,
    audit_service,
    auth_service,
    dose_projection_service,
    duration_service,
    frequency_service,
    prescription_service,
    schedule_import_service,
    schedule_service,
)

__all__ = [
    "adherence_service",
    "audit_service",
    "auth_service",
    "dose_projection_service",
    "duration_service",
    "frequency_service",
    "prescription_service",
    "schedule_import_service",
    "schedule_service",
]
