"""Schema exports."""

from dosage_scheduler.schemas.auth import Token
from dosage_scheduler.schemas.prescription import (
    PrescriptionListResponse,
    PrescriptionRead,
    PrescriptionUpdate,
)
from dosage_scheduler.schemas.scheduler import (
    DayStatsRead,
    DoseInstanceRead,
    HistoryEntryRead,
    HistoryResponse,
    ImportMedication,
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

__all__ = [
    "DayStatsRead",
    "DoseInstanceRead",
    "HistoryEntryRead",
    "HistoryResponse",
    "ImportMedication",
    "ImportRequest",
    "ImportResponse",
    "IntakeEntryRead",
    "ManualScheduleCreate",
    "MarkTakenRequest",
    "MarkTakenResponse",
    "PrescriptionListResponse",
    "PrescriptionRead",
    "PrescriptionUpdate",
    "ReminderUpdate",
    "ScheduleListResponse",
    "ScheduleRead",
    "ScheduleResponse",
    "SimpleResponse",
    "Token",
    "WeekdayStatsRead",
]
