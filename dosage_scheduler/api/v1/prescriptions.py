"""Prescription endpoints consumed by the scheduler."""
from __future__ import annotations

import uuid
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.api import deps
from dosage_scheduler.models.prescription import PrescriptionStatus
from dosage_scheduler.models.user import User
from dosage_scheduler.schemas.prescription import (
    PrescriptionListResponse,
    PrescriptionRead,
    PrescriptionUpdate,
)
from dosage_scheduler.schemas.scheduler import ImportResponse, SimpleResponse
from dosage_scheduler.services import prescription_service, schedule_import_service
from dosage_scheduler.services.schedule_import_service import MedicationInput

from .scheduler import import_response

router = APIRouter()


@router.get("", response_model=PrescriptionListResponse, summary="List my prescriptions")
async def list_prescriptions(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    prescription_status: Annotated[
        PrescriptionStatus | Literal["all"], Query(alias="status")
    ] = PrescriptionStatus.ACTIVE,
    imported: bool = False,
) -> PrescriptionListResponse:
    prescriptions = await prescription_service.list_prescriptions(
        session,
        patient_id=current_user.id,
        status=None if prescription_status == "all" else prescription_status,
        imported_only=imported,
    )
    return PrescriptionListResponse(
        data=[PrescriptionRead.model_validate(obj) for obj in prescriptions]
    )


@router.patch(
    "/{prescription_id}", response_model=SimpleResponse, summary="Update import flag"
)
async def update_prescription(
    prescription_id: uuid.UUID,
    payload: PrescriptionUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> SimpleResponse:
    try:
        await prescription_service.set_imported(
            session,
            patient_id=current_user.id,
            prescription_id=prescription_id,
            imported=payload.imported_to_scheduler,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return SimpleResponse()


@router.post(
    "/{prescription_id}/import",
    response_model=ImportResponse,
    summary="Import a prescription into the schedule",
)
async def import_prescription(
    prescription_id: uuid.UUID,
    request: Request,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    clock: Annotated[deps.Clock, Depends(deps.get_clock)],
) -> ImportResponse:
    try:
        prescription = await prescription_service.get_prescription(
            session, patient_id=current_user.id, prescription_id=prescription_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if prescription.status != PrescriptionStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Prescription is {prescription.status.value}",
        )
    result = await schedule_import_service.import_medications(
        session,
        patient_id=current_user.id,
        medications=[MedicationInput.from_prescription(prescription)],
        now=clock.now(),
        source_record_id=str(prescription.id),
        actor=current_user,
        ip_address=request.client.host if request.client else None,
    )
    return import_response(result)
