"""Medication scheduler endpoints for the signed-in patient."""
from __future__ import annotations

import uuid
from datetime import date
from typing import Annotated, NoReturn
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.api import deps
from dosage_scheduler.core.config import get_settings
from dosage_scheduler.models.user import User
from dosage_scheduler.schemas.scheduler import (
    DayStatsRead,
    DoseInstanceRead,
    HistoryEntryRead,
    HistoryResponse,
    ImportRequest,
    ImportResponse,
    IntakeEntryRead,
    ManualScheduleCreate,
    MarkTakenRequest,
    MarkTakenResponse,
    ReminderUpdate,
    ScheduleListResponse,
    ScheduleRead,
    ScheduleResponse,
    SimpleResponse,
    TodayResponse,
    WeekdayStatsRead,
)
from dosage_scheduler.services import (
    adherence_service,
    audit_service,
    dose_projection_service,
    schedule_import_service,
    schedule_service,
)
from dosage_scheduler.services.schedule_import_service import ImportResult, MedicationInput

router = APIRouter()

SessionDep = Annotated[AsyncSession, Depends(deps.get_db_session)]
UserDep = Annotated[User, Depends(deps.get_current_active_user)]
ClockDep = Annotated[deps.Clock, Depends(deps.get_clock)]
TimezoneDep = Annotated[ZoneInfo, Depends(deps.get_local_timezone)]


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def _raise_http(exc: ValueError | RuntimeError) -> NoReturn:
    if isinstance(exc, schedule_service.ScheduleNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(
        exc, (schedule_service.DoseAlreadyRecordedError, schedule_service.IntakeConflictError)
    ):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def import_response(result: ImportResult) -> ImportResponse:
    return ImportResponse(
        success=result.count > 0,
        schedule_ids=result.schedule_ids,
        count=result.count,
        skipped=result.skipped,
        message=result.message,
    )


@router.post("/import", response_model=ImportResponse, summary="Import prescribed medications")
async def import_schedule(
    payload: ImportRequest,
    request: Request,
    session: SessionDep,
    current_user: UserDep,
    clock: ClockDep,
) -> ImportResponse:
    medications = [
        MedicationInput(
            medication_name=item.medication,
            dosage=item.dosage,
            frequency=item.frequency,
            duration=item.duration,
            duration_unit=item.duration_unit,
            specific_times=item.specific_times,
            instructions=item.instructions,
        )
        for item in payload.medications
    ]
    result = await schedule_import_service.import_medications(
        session,
        patient_id=current_user.id,
        medications=medications,
        now=clock.now(),
        source_record_id=payload.source_record_id,
        actor=current_user,
        ip_address=_client_ip(request),
    )
    return import_response(result)


@router.post("/mark-taken", response_model=MarkTakenResponse, summary="Record a dose")
async def mark_taken(
    payload: MarkTakenRequest,
    request: Request,
    session: SessionDep,
    current_user: UserDep,
    clock: ClockDep,
    tz: TimezoneDep,
) -> MarkTakenResponse:
    patient_id = current_user.id
    hospital_id = current_user.hospital_id
    try:
        entry = await schedule_service.record_intake(
            session,
            patient_id=patient_id,
            schedule_id=payload.schedule_id,
            now=clock.now(),
            tz=tz,
            time=payload.time,
            status=payload.status,
            notes=payload.notes,
            max_retries=get_settings().intake_max_retries,
        )
    except (ValueError, schedule_service.IntakeConflictError) as exc:
        _raise_http(exc)
    entry_read = IntakeEntryRead.model_validate(entry)
    await audit_service.record_event(
        session,
        event_type="dose.logged",
        user_id=patient_id,
        hospital_id=hospital_id,
        resource_type="medication_schedule",
        resource_id=payload.schedule_id,
        description=f"Dose at {entry_read.dose_time} marked {entry_read.status.value}",
        payload={"dose_date": entry_read.dose_date.isoformat(), "dose_time": entry_read.dose_time},
        ip_address=_client_ip(request),
    )
    return MarkTakenResponse(
        message=f"Dose marked as {entry_read.status.value}",
        entry=entry_read,
    )


@router.get("/today", response_model=TodayResponse, summary="Doses for a day")
async def today_schedule(
    session: SessionDep,
    current_user: UserDep,
    clock: ClockDep,
    tz: TimezoneDep,
    day: Annotated[date | None, Query(alias="date")] = None,
) -> TodayResponse:
    now = clock.now()
    target = day or now.astimezone(tz).date()
    projection = await dose_projection_service.project_day(
        session,
        patient_id=current_user.id,
        day=target,
        now=now,
        tz=tz,
        lookback_days=get_settings().streak_lookback_days,
    )
    return TodayResponse(
        date=projection.date,
        schedule=[DoseInstanceRead.model_validate(dose) for dose in projection.doses],
        upcoming=[DoseInstanceRead.model_validate(dose) for dose in projection.upcoming],
        stats=DayStatsRead.model_validate(projection.stats),
    )


@router.get("/history", response_model=HistoryResponse, summary="Adherence history")
async def adherence_history(
    session: SessionDep,
    current_user: UserDep,
    clock: ClockDep,
    tz: TimezoneDep,
    history_range: Annotated[
        adherence_service.HistoryRange, Query(alias="range")
    ] = adherence_service.HistoryRange.LAST_7_DAYS,
) -> HistoryResponse:
    result = await adherence_service.history(
        session,
        patient_id=current_user.id,
        history_range=history_range,
        now=clock.now(),
        tz=tz,
    )
    return HistoryResponse(
        history=[HistoryEntryRead.model_validate(entry) for entry in result.entries],
        weekly_stats={
            label: WeekdayStatsRead.model_validate(stats)
            for label, stats in result.weekly_stats.items()
        },
        date_range={"start": result.start, "end": result.end},
    )


@router.get("/schedules", response_model=ScheduleListResponse, summary="List schedules")
async def list_schedules(
    session: SessionDep,
    current_user: UserDep,
    clock: ClockDep,
    schedule_status: Annotated[
        schedule_service.ScheduleStatusFilter, Query(alias="status")
    ] = schedule_service.ScheduleStatusFilter.ACTIVE,
) -> ScheduleListResponse:
    await schedule_service.deactivate_expired(
        session, patient_id=current_user.id, now=clock.now()
    )
    schedules = await schedule_service.list_schedules(
        session, patient_id=current_user.id, status=schedule_status
    )
    return ScheduleListResponse(data=[ScheduleRead.model_validate(obj) for obj in schedules])


@router.post(
    "/schedules",
    response_model=ScheduleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a medication manually",
)
async def create_schedule(
    payload: ManualScheduleCreate,
    request: Request,
    session: SessionDep,
    current_user: UserDep,
    clock: ClockDep,
) -> ScheduleResponse:
    patient_id = current_user.id
    hospital_id = current_user.hospital_id
    try:
        schedule = await schedule_service.create_manual_schedule(
            session,
            patient_id=patient_id,
            medication_name=payload.medication_name,
            dosage=payload.dosage,
            frequency=payload.frequency,
            duration=payload.duration,
            duration_unit=payload.duration_unit,
            specific_times=payload.specific_times,
            instructions=payload.instructions,
            now=clock.now(),
        )
    except ValueError as exc:
        _raise_http(exc)
    data = ScheduleRead.model_validate(schedule)
    await audit_service.record_event(
        session,
        event_type="schedule.created",
        user_id=patient_id,
        hospital_id=hospital_id,
        resource_type="medication_schedule",
        resource_id=data.id,
        description=f"Manual schedule for {data.medication_name}",
        ip_address=_client_ip(request),
    )
    return ScheduleResponse(data=data)


@router.delete(
    "/schedules/{schedule_id}", response_model=SimpleResponse, summary="Discontinue a schedule"
)
async def delete_schedule(
    schedule_id: uuid.UUID,
    request: Request,
    session: SessionDep,
    current_user: UserDep,
    clock: ClockDep,
) -> SimpleResponse:
    patient_id = current_user.id
    hospital_id = current_user.hospital_id
    try:
        await schedule_service.deactivate_schedule(
            session, patient_id=patient_id, schedule_id=schedule_id, now=clock.now()
        )
    except ValueError as exc:
        _raise_http(exc)
    await audit_service.record_event(
        session,
        event_type="schedule.deactivated",
        user_id=patient_id,
        hospital_id=hospital_id,
        resource_type="medication_schedule",
        resource_id=schedule_id,
        ip_address=_client_ip(request),
    )
    return SimpleResponse(message="Medication removed from schedule")


@router.put(
    "/schedules/{schedule_id}/reminders",
    response_model=SimpleResponse,
    summary="Update reminder settings",
)
async def update_reminders(
    schedule_id: uuid.UUID,
    payload: ReminderUpdate,
    request: Request,
    session: SessionDep,
    current_user: UserDep,
) -> SimpleResponse:
    patient_id = current_user.id
    hospital_id = current_user.hospital_id
    try:
        await schedule_service.update_reminders(
            session,
            patient_id=patient_id,
            schedule_id=schedule_id,
            reminder_enabled=payload.reminder_enabled,
            reminder_minutes_before=payload.reminder_minutes_before,
        )
    except ValueError as exc:
        _raise_http(exc)
    await audit_service.record_event(
        session,
        event_type="schedule.reminders_updated",
        user_id=patient_id,
        hospital_id=hospital_id,
        resource_type="medication_schedule",
        resource_id=schedule_id,
        payload=payload.model_dump(),
        ip_address=_client_ip(request),
    )
    return SimpleResponse(message="Reminder settings updated")
