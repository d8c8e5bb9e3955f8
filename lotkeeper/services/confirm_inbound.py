"""Inbound confirmation: Pending lots become Received inbound records.

For each lot in the request:
  - missing or no longer Pending            → skipped
  - schedule batch missing                  → DataIntegrityError (abort)
  - inbound already exists at (job, lot no) → skipped
  - any reference name unresolvable         → LookupNotFoundError (abort)
  - status flip loses a concurrent race     → skipped
  - otherwise: lot Received, inbound inserted, pre-weighed bundles moved

Aborts roll back every lot of the call, including ones already inserted.
Skips are logged at WARNING and simply missing from the return value.
"""

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.database import transaction_scope
from lotkeeper.middleware.exceptions import (
    BusinessLogicError,
    DataIntegrityError,
    ResourceNotFoundError,
)
from lotkeeper.models.inbound import Inbound, InboundBundle
from lotkeeper.models.lot import LOT_PENDING, LOT_RECEIVED, Lot
from lotkeeper.models.schedule import ScheduleInbound, SelectedInbound
from lotkeeper.services.bundles import delete_bundles
from lotkeeper.services.lookup import resolve_lot_references
from lotkeeper.services.weighing import find_counterpart
from lotkeeper.utils.activity import log_activity

logger = logging.getLogger(__name__)


async def _existing_inbound(db: AsyncSession, job_no: str, lot_no: int) -> Inbound | None:
    result = await db.execute(
        select(Inbound).where(Inbound.job_no == job_no, Inbound.lot_no == lot_no).limit(1)
    )
    return result.scalar_one_or_none()


async def _claim_lot(db: AsyncSession, lot_id: int) -> bool:
    """Flip the lot to Received only if it is still Pending."""
    result = await db.execute(
        update(Lot)
        .where(Lot.lot_id == lot_id, Lot.status == LOT_PENDING)
        .values(status=LOT_RECEIVED, is_confirm=True, updated_at=datetime.utcnow())
        .returning(Lot.lot_id)
        .execution_options(synchronize_session="fetch")
    )
    return result.scalar_one_or_none() is not None


async def confirm_lots(
    lot_refs: list[int],
    processed_by: int,
    db: AsyncSession | None = None,
) -> list[Inbound]:
    """Confirm receipt of the given lots and return the inbound rows created."""
    async with transaction_scope(db) as session:
        inserted: list[Inbound] = []

        for lot_id in lot_refs:
            lot = await session.get(Lot, lot_id)
            if lot is None or lot.status != LOT_PENDING:
                logger.warning("Skipping lot %s: not found or not pending", lot_id)
                continue

            schedule = (
                await session.get(ScheduleInbound, lot.schedule_inbound_id)
                if lot.schedule_inbound_id is not None
                else None
            )
            if schedule is None:
                raise DataIntegrityError(
                    f"Could not find the original scheduler for lot {lot_id}"
                )

            if await _existing_inbound(session, lot.job_no, lot.lot_no):
                logger.warning(
                    "Skipping lot %s: inbound already exists for %s / %s",
                    lot_id, lot.job_no, lot.lot_no,
                )
                continue

            references = await resolve_lot_references(session, lot)

            if not await _claim_lot(session, lot_id):
                logger.warning("Skipping lot %s: confirmed concurrently", lot_id)
                continue

            inbound = Inbound(
                job_no=lot.job_no,
                lot_no=lot.lot_no,
                lot_id=lot.lot_id,
                barcode_no=f"BC-{lot.lot_id}",
                no_of_bundle=lot.expected_bundle_count or 0,
                gross_weight=lot.gross_weight,
                net_weight=lot.net_weight,
                actual_weight=lot.actual_weight,
                sticker_weight=lot.sticker_weight,
                ex_warehouse_lot=lot.ex_warehouse_lot,
                ex_warehouse_warrant=lot.ex_warehouse_warrant,
                crew_lot_no=lot.crew_lot_no,
                is_weighted=False,
                user_id=schedule.user_id,
                processed_id=processed_by,
                inbound_date=datetime.utcnow(),
                schedule_inbound_date=lot.inbound_date or schedule.inbound_date,
                **references,
            )
            session.add(inbound)
            await session.flush()

            # ── Move bundles weighed before confirmation ──────────
            bundles = (
                await session.execute(
                    select(InboundBundle).where(InboundBundle.lot_id == lot_id)
                )
            ).scalars().all()
            if bundles:
                for bundle in bundles:
                    bundle.lot_id = None
                    bundle.inbound_id = inbound.inbound_id
                lot.is_weighted = True
                inbound.is_weighted = True

            await log_activity(
                session, processed_by,
                action="confirmed",
                entity_type="inbound",
                entity_id=inbound.inbound_id,
                entity_code=f"{lot.job_no}-{lot.lot_no}",
                summary=f"Confirmed lot {lot.lot_no} of {lot.job_no}",
                details={"lot_id": lot_id, "bundles_moved": len(bundles)},
            )
            inserted.append(inbound)

        await session.flush()
        logger.info("Confirmed %d of %d lots", len(inserted), len(lot_refs))
        return inserted


async def reverse_inbound(
    inbound_id: int,
    user_id: int | None = None,
    db: AsyncSession | None = None,
) -> dict:
    """Undo a confirmation: the lot goes back to Pending, the inbound is removed.

    Refused once the inbound has been selected for outbound.
    """
    async with transaction_scope(db) as session:
        inbound = await session.get(Inbound, inbound_id)
        if inbound is None:
            raise ResourceNotFoundError("Inbound", inbound_id)

        selected = (
            await session.execute(
                select(SelectedInbound.selected_inbound_id)
                .where(SelectedInbound.inbound_id == inbound_id)
                .limit(1)
            )
        ).scalar_one_or_none()
        if selected is not None:
            raise BusinessLogicError(
                f"Inbound {inbound_id} is scheduled for outbound and cannot be reversed",
                error_code="INBOUND_IN_OUTBOUND",
            )

        job_no, lot_no = inbound.job_no, inbound.lot_no
        lot = await find_counterpart(session, inbound, True)
        removed = await delete_bundles(session, InboundBundle.inbound_id == inbound_id)

        if lot is None:
            logger.warning("Inbound %s has no source lot to reset", inbound_id)
        else:
            lot.status = LOT_PENDING
            lot.is_confirm = False
            lot.is_weighted = False
            lot.crew_lot_no = None
            lot.actual_weight = None
            lot.sticker_weight = None
        await session.delete(inbound)

        await log_activity(
            session, user_id,
            action="reversed",
            entity_type="inbound",
            entity_id=inbound_id,
            entity_code=f"{job_no}-{lot_no}",
            summary=f"Reversed confirmation of lot {lot_no} of {job_no}",
            details={"bundles_removed": removed},
        )
        await session.flush()
        logger.info("Reversed inbound %s (%s / %s)", inbound_id, job_no, lot_no)
        return {"inboundId": inbound_id, "jobNo": job_no, "lotNo": lot_no}
