"""Actual-weight capture for lots and inbound records.

Crew weigh every bundle and submit the whole list at once.  A save is a
full replace: the owner's previous bundles are deleted and the submitted
list inserted.  Weights arrive in kilograms and are stored in metric tons.

The record that was weighed and its counterpart (the Lot ↔ Inbound pair
sharing job/lot number) end up with the same actual weight, sticker weight
and ``is_weighted`` flag.  Bundles are owned by the inbound once one
exists, otherwise by the lot.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.database import transaction_scope
from lotkeeper.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from lotkeeper.models.inbound import Inbound, InboundBundle
from lotkeeper.models.lot import Lot
from lotkeeper.schemas.weighing import BundleIn
from lotkeeper.services.bundles import delete_bundles
from lotkeeper.utils.activity import log_activity

logger = logging.getLogger(__name__)

KG_PER_TON = 1000


@dataclass
class WeighingResult:
    target_id: int
    is_inbound: bool
    actual_weight: float
    sticker_weight: float
    counterpart_id: int | None = None
    is_weighted: bool = True
    bundles: list[InboundBundle] = field(default_factory=list)


def total_sticker_weight(bundles: list[BundleIn]) -> float:
    """Sum of positive sticker weights, kg → metric tons."""
    return sum(b.sticker_weight for b in bundles if b.sticker_weight and b.sticker_weight > 0) / KG_PER_TON


async def find_counterpart(db: AsyncSession, record, is_inbound: bool):
    """Return the Lot for an Inbound, or the Inbound for a Lot (or None).

    The ``Inbound.lot_id`` link wins.  Older rows without it pair on
    job/lot number, then on the ex-warehouse lot, since a crew lot number
    may have renumbered the inbound.
    """
    if is_inbound and record.lot_id is not None:
        found = await db.get(Lot, record.lot_id)
        if found is not None:
            return found
    if not is_inbound:
        found = (
            await db.execute(select(Inbound).where(Inbound.lot_id == record.lot_id).limit(1))
        ).scalar_one_or_none()
        if found is not None:
            return found

    other = Lot if is_inbound else Inbound
    # Inbounds linked to some other lot never pair by number
    unlinked = [] if is_inbound else [Inbound.lot_id.is_(None)]
    result = await db.execute(
        select(other).where(
            other.job_no == record.job_no, other.lot_no == record.lot_no, *unlinked
        ).limit(1)
    )
    found = result.scalar_one_or_none()
    if found is None and record.ex_warehouse_lot:
        result = await db.execute(
            select(other).where(
                other.job_no == record.job_no,
                other.ex_warehouse_lot == record.ex_warehouse_lot,
                *unlinked,
            ).limit(1)
        )
        found = result.scalar_one_or_none()
    return found


async def resolve_target_id(
    db: AsyncSession,
    is_inbound: bool,
    target_id: int | None = None,
    *,
    job_no: str | None = None,
    lot_no: int | None = None,
    ex_warehouse_lot: str | None = None,
) -> int | None:
    """Find the record to weigh: explicit id, then ex-warehouse lot, then job/lot no."""
    if target_id:
        return target_id

    model = Inbound if is_inbound else Lot
    id_col = model.inbound_id if is_inbound else model.lot_id

    if ex_warehouse_lot:
        criteria = [model.ex_warehouse_lot == ex_warehouse_lot]
        if job_no:
            criteria.append(model.job_no == job_no)
        found = (await db.execute(select(id_col).where(*criteria).limit(1))).scalar_one_or_none()
        if found is not None:
            return found

    if job_no and lot_no is not None:
        found = (
            await db.execute(
                select(id_col).where(model.job_no == job_no, model.lot_no == lot_no).limit(1)
            )
        ).scalar_one_or_none()
        if found is not None:
            return found

    return None


async def save_weighing(
    target_id: int,
    is_inbound: bool,
    actual_weight: float,
    bundles: list[BundleIn],
    user_id: int | None = None,
    db: AsyncSession | None = None,
) -> WeighingResult:
    """Replace the bundle list and record the actual weight for a lot or inbound."""
    bundle_nos = [b.bundle_no for b in bundles]
    if len(bundle_nos) != len(set(bundle_nos)):
        raise BusinessLogicError("Bundle numbers must be unique within a weighing")

    async with transaction_scope(db) as session:
        model = Inbound if is_inbound else Lot
        target = await session.get(model, target_id)
        if target is None:
            raise ResourceNotFoundError("Inbound" if is_inbound else "Lot", target_id)

        counterpart = await find_counterpart(session, target, is_inbound)
        inbound = target if is_inbound else counterpart
        lot = counterpart if is_inbound else target

        # ── Replace bundles on the owning record ─────────────
        if inbound is not None:
            await delete_bundles(session, InboundBundle.inbound_id == inbound.inbound_id)
        if lot is not None:
            await delete_bundles(session, InboundBundle.lot_id == lot.lot_id)

        saved = []
        for b in bundles:
            bundle = InboundBundle(
                inbound_id=inbound.inbound_id if inbound is not None else None,
                lot_id=lot.lot_id if inbound is None else None,
                bundle_no=b.bundle_no,
                weight=b.weight,
                melt_no=b.melt_no or None,
                sticker_weight=b.sticker_weight,
                is_outbounded=False,
            )
            session.add(bundle)
            saved.append(bundle)

        # ── Weights on both records ──────────────────────────
        weight_mt = actual_weight / KG_PER_TON
        sticker_mt = total_sticker_weight(bundles)
        for record in (target, counterpart):
            if record is None:
                continue
            record.actual_weight = weight_mt
            record.sticker_weight = sticker_mt
            record.is_weighted = True

        await session.flush()

        counterpart_id = None
        if counterpart is not None:
            counterpart_id = counterpart.lot_id if is_inbound else counterpart.inbound_id

        await log_activity(
            session, user_id,
            action="weighed",
            entity_type="inbound" if is_inbound else "lot",
            entity_id=target_id,
            entity_code=f"{target.job_no}-{target.lot_no}",
            summary=f"Recorded {len(saved)} bundles, {actual_weight} kg",
            details={"counterpart_id": counterpart_id, "sticker_weight_mt": sticker_mt},
        )
        logger.info(
            "Weighed %s %s: %s kg across %d bundles",
            "inbound" if is_inbound else "lot", target_id, actual_weight, len(saved),
        )

        return WeighingResult(
            target_id=target_id,
            is_inbound=is_inbound,
            actual_weight=actual_weight,
            sticker_weight=sticker_mt,
            counterpart_id=counterpart_id,
            bundles=saved,
        )
