"""Crew-assigned lot numbers.

Warehouse crew renumber lots on the floor.  A crew lot number applies to
every record sharing the job number and ex-warehouse lot: unweighted
inbound records take it as both ``crew_lot_no`` and ``lot_no``, lots record
it as ``crew_lot_no`` only.  Within a job a crew lot number may be used by
one inbound record, and may not shadow the lot number of any other lot.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.database import transaction_scope
from lotkeeper.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from lotkeeper.models.inbound import Inbound
from lotkeeper.models.lot import Lot
from lotkeeper.services.weighing import find_counterpart
from lotkeeper.utils.activity import log_activity

logger = logging.getLogger(__name__)


@dataclass
class CrewLotUpdate:
    job_no: str
    ex_warehouse_lot: str | None
    crew_lot_no: int
    inbounds_updated: int
    lots_updated: int


async def _inbound_for(db: AsyncSession, id_value: int, is_inbound: bool) -> Inbound:
    if is_inbound:
        inbound = await db.get(Inbound, id_value)
        if inbound is None:
            raise ResourceNotFoundError("Inbound", id_value)
        return inbound

    lot = await db.get(Lot, id_value)
    if lot is None:
        raise ResourceNotFoundError("Lot", id_value)
    inbound = await find_counterpart(db, lot, False)
    if inbound is None:
        raise ResourceNotFoundError("Inbound for lot", id_value)
    return inbound


async def resolve_crew_target_id(
    db: AsyncSession,
    is_inbound: bool,
    job_no: str,
    ex_warehouse_lot: str,
) -> int | None:
    """Find the inbound (or lot) id from job number + ex-warehouse lot."""
    model = Inbound if is_inbound else Lot
    id_col = model.inbound_id if is_inbound else model.lot_id
    result = await db.execute(
        select(id_col).where(
            model.job_no == job_no, model.ex_warehouse_lot == ex_warehouse_lot
        ).limit(1)
    )
    return result.scalar_one_or_none()


async def update_crew_lot_no(
    id_value: int,
    is_inbound: bool,
    crew_lot_no: int,
    user_id: int | None = None,
    db: AsyncSession | None = None,
) -> CrewLotUpdate:
    """Apply a crew lot number to every record of the same ex-warehouse lot."""
    async with transaction_scope(db) as session:
        inbound = await _inbound_for(session, id_value, is_inbound)
        job_no, ex_warehouse_lot = inbound.job_no, inbound.ex_warehouse_lot

        clash = (
            await session.execute(
                select(Inbound.inbound_id).where(
                    Inbound.job_no == job_no,
                    Inbound.inbound_id != inbound.inbound_id,
                    (Inbound.crew_lot_no == crew_lot_no) | (Inbound.lot_no == crew_lot_no),
                ).limit(1)
            )
        ).scalar_one_or_none()
        if clash is not None:
            raise BusinessLogicError(
                f"Crew Lot No {crew_lot_no} already exists for job {job_no} in inbound records",
                error_code="DUPLICATE_CREW_LOT_NO",
            )

        # A lot still to be confirmed would find this number taken
        own_lot = await find_counterpart(session, inbound, True)
        lot_clash_criteria = [Lot.job_no == job_no, Lot.lot_no == crew_lot_no]
        if own_lot is not None:
            lot_clash_criteria.append(Lot.lot_id != own_lot.lot_id)
        lot_clash = (
            await session.execute(
                select(Lot.lot_id).where(*lot_clash_criteria).limit(1)
            )
        ).scalar_one_or_none()
        if lot_clash is not None:
            raise BusinessLogicError(
                f"Crew Lot No {crew_lot_no} is the lot number of another lot in job {job_no}",
                error_code="DUPLICATE_CREW_LOT_NO",
            )

        now = datetime.utcnow()
        inbound_criteria = [
            Inbound.job_no == job_no,
            Inbound.is_weighted.is_not(True),
        ]
        lot_criteria = [Lot.job_no == job_no]
        if ex_warehouse_lot is None:
            inbound_criteria.append(Inbound.inbound_id == inbound.inbound_id)
            lot_criteria.append(
                Lot.lot_id == own_lot.lot_id if own_lot is not None else Lot.lot_no == inbound.lot_no
            )
        else:
            inbound_criteria.append(Inbound.ex_warehouse_lot == ex_warehouse_lot)
            lot_criteria.append(Lot.ex_warehouse_lot == ex_warehouse_lot)

        inbounds_updated = len((
            await session.execute(
                update(Inbound)
                .where(*inbound_criteria)
                .values(crew_lot_no=crew_lot_no, lot_no=crew_lot_no, updated_at=now)
                .returning(Inbound.inbound_id)
                .execution_options(synchronize_session="fetch")
            )
        ).all())
        lots_updated = len((
            await session.execute(
                update(Lot)
                .where(*lot_criteria)
                .values(crew_lot_no=crew_lot_no, updated_at=now)
                .returning(Lot.lot_id)
                .execution_options(synchronize_session="fetch")
            )
        ).all())

        await log_activity(
            session, user_id,
            action="crew_lot_no_updated",
            entity_type="inbound",
            entity_id=inbound.inbound_id,
            entity_code=f"{job_no}-{ex_warehouse_lot}",
            summary=f"Crew Lot No set to {crew_lot_no}",
        )
        await session.flush()
        logger.info(
            "Crew Lot No %s applied to %s / %s (%d inbounds, %d lots)",
            crew_lot_no, job_no, ex_warehouse_lot, inbounds_updated, lots_updated,
        )
        return CrewLotUpdate(
            job_no=job_no,
            ex_warehouse_lot=ex_warehouse_lot,
            crew_lot_no=crew_lot_no,
            inbounds_updated=inbounds_updated,
            lots_updated=lots_updated,
        )
