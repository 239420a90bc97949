"""Prescription schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from dosage_scheduler.models.prescription import PrescriptionStatus


class PrescriptionRead(BaseModel):
    """Serialized prescription."""

    id: uuid.UUID
    patient_id: uuid.UUID
    hospital_id: uuid.UUID | None = None
    doctor_id: uuid.UUID | None = None
    doctor_name: str
    medication_name: str
    dosage: str
    frequency: str
    specific_times: list[str] | None = None
    duration: str
    instructions: str
    status: PrescriptionStatus
    imported_to_scheduler: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PrescriptionListResponse(BaseModel):
    success: bool = True
    data: list[PrescriptionRead]


class PrescriptionUpdate(BaseModel):
    """Fields the scheduler may change on a prescription."""

    imported_to_scheduler: bool
