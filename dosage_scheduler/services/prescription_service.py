"""Read access to doctor-issued prescriptions."""

from __future__ import annotations

import uuid

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.models.prescription import Prescription, PrescriptionStatus


class PrescriptionNotFoundError(ValueError):
    """Raised when a prescription does not exist for the patient."""


async def list_prescriptions(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    status: PrescriptionStatus | None = PrescriptionStatus.ACTIVE,
    imported_only: bool = False,
) -> list[Prescription]:
    """Return the patient's prescriptions, newest first; ``status=None`` means all."""
    stmt: Select[tuple[Prescription]] = select(Prescription).where(
        Prescription.patient_id == patient_id
    )
    if status is not None:
        stmt = stmt.where(Prescription.status == status)
    if imported_only:
        stmt = stmt.where(Prescription.imported_to_scheduler.is_(True))
    stmt = stmt.order_by(Prescription.created_at.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_prescription(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    prescription_id: uuid.UUID,
) -> Prescription:
    prescription = await session.get(Prescription, prescription_id)
    if prescription is None or prescription.patient_id != patient_id:
        raise PrescriptionNotFoundError("Prescription not found")
    return prescription


async def set_imported(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    prescription_id: uuid.UUID,
    imported: bool = True,
) -> Prescription:
    """Flag whether a prescription has been copied into the scheduler."""
    prescription = await get_prescription(
        session, patient_id=patient_id, prescription_id=prescription_id
    )
    prescription.imported_to_scheduler = imported
    await session.commit()
    await session.refresh(prescription)
    return prescription
