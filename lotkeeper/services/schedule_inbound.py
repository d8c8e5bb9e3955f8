"""Inbound scheduling: an office user books lots for arrival.

``jobDataMap`` maps each job number to the lots expected for it.  For each
job the call writes one ScheduleInbound and a Pending Lot per entry, all in
one transaction.  A lot number already scheduled for the job (in the
database or twice in the payload) rejects the whole call with
DuplicateScheduleError before anything is written.

Shape and commodity spellings from spreadsheets are normalised, and any
reference name not seen before is added to its table so confirmation can
resolve it later.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.database import transaction_scope
from lotkeeper.middleware.exceptions import DuplicateScheduleError
from lotkeeper.models.lot import LOT_PENDING, Lot
from lotkeeper.models.schedule import ScheduleInbound
from lotkeeper.schemas.inbound import ScheduleInboundRequest, ScheduleLotIn
from lotkeeper.services.lookup import LOT_REFERENCES, ensure_reference
from lotkeeper.utils.activity import log_activity

logger = logging.getLogger(__name__)

SHAPE_ALIASES = {"ing": "Ingot", "ingot": "Ingot", "tbar": "T-bar"}
COMMODITY_ALIASES = {"LEAD": "Lead", "ZINC": "Zinc"}


@dataclass
class ScheduledJob:
    schedule: ScheduleInbound
    lots: list[Lot]


def normalise_lot(lot: ScheduleLotIn) -> dict:
    """Lot column values with shape and commodity spellings cleaned up."""
    values = lot.model_dump()
    shape = values.get("shape")
    if shape:
        values["shape"] = SHAPE_ALIASES.get(shape.strip().lower(), shape.strip())
    commodity = values.get("commodity")
    if commodity:
        values["commodity"] = COMMODITY_ALIASES.get(commodity.strip().upper(), commodity.strip())
    return values


async def _taken_lot_nos(db: AsyncSession, job_no: str, lot_nos: list[int]) -> list[int]:
    result = await db.execute(
        select(Lot.lot_no).where(Lot.job_no == job_no, Lot.lot_no.in_(lot_nos))
    )
    taken = set(result.scalars().all())
    seen = set()
    for lot_no in lot_nos:
        if lot_no in seen:
            taken.add(lot_no)
        seen.add(lot_no)
    return sorted(taken)


async def schedule_inbound(
    payload: ScheduleInboundRequest,
    user_id: int,
    db: AsyncSession | None = None,
) -> list[ScheduledJob]:
    """Create the schedule batches and Pending lots described by *payload*."""
    scheduled = []

    async with transaction_scope(db) as session:
        for job_no, job in payload.job_data_map.items():
            taken = await _taken_lot_nos(session, job_no, [lot.lot_no for lot in job.lots])
            if taken:
                logger.warning("Job %s: lot(s) %s already scheduled", job_no, taken)
                raise DuplicateScheduleError(job_no, taken)

        for job_no, job in payload.job_data_map.items():
            rows = [normalise_lot(lot) for lot in job.lots]
            for values in rows:
                for attr, table, name_column, id_column in LOT_REFERENCES:
                    await ensure_reference(session, table, name_column, id_column, values.get(attr))

            schedule = ScheduleInbound(
                user_id=user_id, job_no=job_no, inbound_date=payload.inbound_date
            )
            session.add(schedule)
            await session.flush()

            lots = [
                Lot(
                    job_no=job_no,
                    schedule_inbound_id=schedule.schedule_inbound_id,
                    inbound_date=payload.inbound_date,
                    status=LOT_PENDING,
                    **values,
                )
                for values in rows
            ]
            session.add_all(lots)
            await session.flush()

            ex_lots = ", ".join(v["ex_warehouse_lot"] for v in rows if v.get("ex_warehouse_lot"))
            await log_activity(
                session, user_id,
                action="scheduled",
                entity_type="schedule_inbound",
                entity_id=schedule.schedule_inbound_id,
                entity_code=job_no,
                summary=f"Scheduled {len(lots)} lot(s) for {job_no}",
                details={
                    "lot_nos": [lot.lot_no for lot in lots],
                    "inbound_date": payload.inbound_date.isoformat(),
                },
            )
            logger.info(
                "User %s scheduled %d lot(s) for %s on %s [%s]",
                user_id, len(lots), job_no, payload.inbound_date.date(), ex_lots,
            )
            scheduled.append(ScheduledJob(schedule=schedule, lots=lots))

    return scheduled
