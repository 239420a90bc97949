"""Rebuild denormalized schedule counters from the intake log.

Usage: python -m scripts.recompute_counters [--patient-id UUID]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import uuid

from sqlalchemy import select

from dosage_scheduler.core.config import get_settings
from dosage_scheduler.db.session import dispose_engine, get_sessionmaker
from dosage_scheduler.models import MedicationSchedule
from dosage_scheduler.services import schedule_service

logger = logging.getLogger("recompute_counters")


async def recompute(patient_id: uuid.UUID | None = None) -> int:
    settings = get_settings()
    sessionmaker = get_sessionmaker(settings.database_url)
    updated = 0
    async with sessionmaker() as session:
        stmt = select(MedicationSchedule.id, MedicationSchedule.patient_id)
        if patient_id is not None:
            stmt = stmt.where(MedicationSchedule.patient_id == patient_id)
        rows = (await session.execute(stmt)).all()
        for schedule_id, schedule_patient_id in rows:
            counters = await schedule_service.recompute_counters(
                session, patient_id=schedule_patient_id, schedule_id=schedule_id
            )
            logger.info(
                "Schedule %s: taken=%s missed=%s skipped=%s adherence=%s%%",
                schedule_id,
                counters.taken_doses,
                counters.missed_doses,
                counters.skipped_doses,
                counters.adherence_rate,
            )
            updated += 1
    await dispose_engine(settings.database_url)
    return updated


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--patient-id", type=uuid.UUID, default=None)
    args = parser.parse_args()
    logging.basicConfig(level=get_settings().log_level.upper())
    count = asyncio.run(recompute(args.patient_id))
    print(f"Recomputed counters for {count} schedule(s)")


if __name__ == "__main__":
    main()
