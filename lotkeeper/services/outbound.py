"""Outbound release: scheduling, confirmation and GRN documents.

Flow:
  1. schedule_outbound            → ScheduleOutbound + one SelectedInbound per inbound
  2. confirm_outbound_selection   → selections flagged ``is_outbounded``
  3. get_grn_details_for_selection → prospective GRN number + lot lines
  4. create_outbound_document     → Outbound header, OutboundTransaction per
                                    lot, rendered PDF + preview
  5. update_and_regenerate_grn    → edit header / brands, render again

``selected_inbound_ids`` always refers to SelectedInbound primary keys.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.config import settings
from lotkeeper.database import transaction_scope
from lotkeeper.middleware.exceptions import (
    BusinessLogicError,
    DocumentGenerationError,
    DuplicateGrnError,
    ResourceNotFoundError,
)
from lotkeeper.models.inbound import Inbound, InboundBundle
from lotkeeper.models.outbound import Outbound, OutboundTransaction
from lotkeeper.models.reference import Brand, Commodity, ExLmeWarehouse, Shape
from lotkeeper.models.schedule import ScheduleOutbound, SelectedInbound
from lotkeeper.schemas.outbound import (
    CargoDetails,
    CreateGrnRequest,
    GrnLotLine,
    GrnPreviewOut,
    ScheduleOutboundRequest,
    UpdateGrnRequest,
)
from lotkeeper.services.grn_document import GrnDocument, GrnLot, GrnRenderer, RenderedGrn
from lotkeeper.services.photos import decode_base64_image
from lotkeeper.utils.activity import log_activity
from lotkeeper.utils.numbering import next_grn_number, outbound_reference

logger = logging.getLogger(__name__)

# Lot weights are printed on the GRN after this conversion
GRN_WEIGHT_FACTOR = 0.907185

_SCHEDULE_FIELDS = (
    "release_date", "release_warehouse", "storage_release_location",
    "transport_vendor", "lot_release_weight", "outbound_type",
    "export_date", "stuffing_date", "delivery_date", "container_no", "seal_no",
)
_EDITABLE_TRANSACTION_FIELDS = (
    "release_date", "release_warehouse", "transport_vendor", "container_no", "seal_no",
)


@dataclass
class ScheduledOutbound:
    schedule_outbound_id: int
    selected_inbound_ids: list[int]


@dataclass
class OutboundDocument:
    outbound: Outbound
    transactions: int
    rendered: RenderedGrn


# ── Helpers ──────────────────────────────────────────────────

def format_release_date(value: datetime | None) -> str | None:
    """Format a stored (UTC) timestamp as ``dd-Mon-yyyy`` in the GRN zone."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(ZoneInfo(settings.timezone)).strftime("%d-%b-%Y")


def grn_weight(value: float | None) -> str:
    return f"{(value or 0) * GRN_WEIGHT_FACTOR:.4f}"


def grn_lot_number(job_no: str, lot_no: int) -> str:
    return f"{outbound_reference(job_no)}-{lot_no}"


def _container_and_seal(container_no: str | None, seal_no: str | None) -> str | None:
    parts = [p for p in (container_no, seal_no) if p]
    return " / ".join(parts) or None


def _decode_signature(data: str | None) -> bytes | None:
    if not data:
        return None
    return decode_base64_image(data)[0]


async def _selection_rows(
    db: AsyncSession,
    selected_inbound_ids: list[int],
    schedule_outbound_id: int | None = None,
):
    """SelectedInbound + Inbound + ScheduleOutbound + reference names."""
    stmt = (
        select(
            SelectedInbound,
            Inbound,
            ScheduleOutbound,
            Commodity.commodity_name,
            Brand.brand_name,
            Shape.shape_name,
            ExLmeWarehouse.ex_lme_warehouse_name,
        )
        .join(Inbound, SelectedInbound.inbound_id == Inbound.inbound_id)
        .join(
            ScheduleOutbound,
            SelectedInbound.schedule_outbound_id == ScheduleOutbound.schedule_outbound_id,
        )
        .outerjoin(Commodity, Inbound.commodity_id == Commodity.commodity_id)
        .outerjoin(Brand, Inbound.brand_id == Brand.brand_id)
        .outerjoin(Shape, Inbound.shape_id == Shape.shape_id)
        .outerjoin(ExLmeWarehouse, Inbound.ex_lme_warehouse_id == ExLmeWarehouse.ex_lme_warehouse_id)
        .where(SelectedInbound.selected_inbound_id.in_(selected_inbound_ids))
        .order_by(Inbound.job_no, Inbound.lot_no)
    )
    if schedule_outbound_id is not None:
        stmt = stmt.where(SelectedInbound.schedule_outbound_id == schedule_outbound_id)
    return (await db.execute(stmt)).all()


async def _render(renderer: GrnRenderer, document: GrnDocument) -> RenderedGrn:
    # ReportLab and Pillow are blocking; keep them off the event loop
    try:
        return await run_in_threadpool(renderer.render, document)
    except Exception as exc:
        logger.error("GRN %s rendering failed: %s", document.grn_no, exc)
        raise DocumentGenerationError(f"Could not render GRN {document.grn_no}: {exc}") from exc


# ── Scheduling ───────────────────────────────────────────────

async def schedule_outbound(
    payload: ScheduleOutboundRequest,
    user_id: int,
    db: AsyncSession | None = None,
) -> ScheduledOutbound:
    """Create a release schedule over the given inbound records."""
    inbound_ids = list(dict.fromkeys(payload.inbound_ids))

    async with transaction_scope(db) as session:
        inbounds = (
            await session.execute(select(Inbound).where(Inbound.inbound_id.in_(inbound_ids)))
        ).scalars().all()
        found = {i.inbound_id for i in inbounds}
        missing = [i for i in inbound_ids if i not in found]
        if missing:
            raise ResourceNotFoundError("Inbound", ", ".join(str(m) for m in missing))

        taken = (
            await session.execute(
                select(SelectedInbound).where(SelectedInbound.inbound_id.in_(inbound_ids))
            )
        ).scalars().all()
        released = sorted({s.inbound_id for s in taken if s.is_outbounded})
        if released:
            raise BusinessLogicError(
                f"Inbound records already released: {released}",
                error_code="INBOUND_ALREADY_RELEASED",
            )
        active = sorted({s.inbound_id for s in taken})
        if active:
            raise BusinessLogicError(
                f"Inbound records already scheduled for outbound: {active}",
                error_code="INBOUND_ALREADY_SELECTED",
            )

        schedule = ScheduleOutbound(
            user_id=user_id,
            **{f: getattr(payload, f) for f in _SCHEDULE_FIELDS},
        )
        session.add(schedule)
        await session.flush()

        selections = []
        for inbound in sorted(inbounds, key=lambda i: inbound_ids.index(i.inbound_id)):
            selection = SelectedInbound(
                schedule_outbound_id=schedule.schedule_outbound_id,
                inbound_id=inbound.inbound_id,
                job_no=inbound.job_no,
                lot_no=inbound.lot_no,
                is_outbounded=False,
            )
            session.add(selection)
            selections.append(selection)
        await session.flush()

        await log_activity(
            session, user_id,
            action="scheduled",
            entity_type="schedule_outbound",
            entity_id=schedule.schedule_outbound_id,
            summary=f"Scheduled {len(selections)} inbound records for release",
            details={"inbound_ids": inbound_ids},
        )
        await session.flush()
        logger.info(
            "Schedule outbound %s created with %d lots",
            schedule.schedule_outbound_id, len(selections),
        )
        return ScheduledOutbound(
            schedule_outbound_id=schedule.schedule_outbound_id,
            selected_inbound_ids=[s.selected_inbound_id for s in selections],
        )


async def confirm_outbound_selection(
    schedule_outbound_id: int,
    selected_inbound_ids: list[int],
    db: AsyncSession | None = None,
) -> list[int]:
    """Flag selections of one schedule as outbounded; returns the ids flipped.

    Selections already outbounded or belonging to another schedule are left
    alone and missing from the result.
    """
    async with transaction_scope(db) as session:
        ids = (
            await session.execute(
                select(SelectedInbound.selected_inbound_id).where(
                    SelectedInbound.selected_inbound_id.in_(selected_inbound_ids),
                    SelectedInbound.schedule_outbound_id == schedule_outbound_id,
                    SelectedInbound.is_outbounded.is_(False),
                )
            )
        ).scalars().all()
        if ids:
            await session.execute(
                update(SelectedInbound)
                .where(SelectedInbound.selected_inbound_id.in_(ids))
                .values(is_outbounded=True, updated_at=datetime.utcnow())
                .execution_options(synchronize_session="fetch")
            )
        await session.flush()
        logger.info(
            "Confirmed %d of %d selections on schedule %s",
            len(ids), len(selected_inbound_ids), schedule_outbound_id,
        )
        return list(ids)


# ── GRN ──────────────────────────────────────────────────────

async def get_grn_details_for_selection(
    job_no: str,
    selected_inbound_ids: list[int],
    db: AsyncSession,
) -> GrnPreviewOut | None:
    """Prospective GRN for a selection, or None when nothing matches."""
    rows = await _selection_rows(db, selected_inbound_ids)
    if not rows:
        return None

    first = rows[0]
    return GrnPreviewOut(
        release_date=format_release_date(first.ScheduleOutbound.release_date),
        our_reference=outbound_reference(first.Inbound.job_no),
        grn_no=await next_grn_number(db, job_no),
        warehouse=first.ScheduleOutbound.release_warehouse,
        cargo_details=CargoDetails(
            commodity=first.commodity_name,
            shape=first.shape_name,
            brand=first.brand_name,
        ),
        lots=[
            GrnLotLine(
                lot_no=grn_lot_number(row.Inbound.job_no, row.Inbound.lot_no),
                bundles=row.Inbound.no_of_bundle or 0,
                gross_weight_mt=grn_weight(row.Inbound.gross_weight),
                net_weight_mt=grn_weight(row.Inbound.net_weight),
            )
            for row in rows
        ],
    )


async def create_outbound_document(
    payload: CreateGrnRequest,
    renderer: GrnRenderer,
    db: AsyncSession | None = None,
) -> OutboundDocument:
    """Write the GRN header and per-lot transactions, then render the document."""
    selected_ids = list(dict.fromkeys(payload.selected_inbound_ids))

    async with transaction_scope(db) as session:
        rows = await _selection_rows(session, selected_ids, payload.schedule_outbound_id)
        found = {row.SelectedInbound.selected_inbound_id for row in rows}
        missing = [i for i in selected_ids if i not in found]
        if missing:
            raise ResourceNotFoundError(
                f"Selection on schedule {payload.schedule_outbound_id}",
                ", ".join(str(m) for m in missing),
            )

        grn_no = payload.grn_no or await next_grn_number(session, payload.job_identifier)
        existing = (
            await session.execute(select(Outbound.outbound_id).where(Outbound.grn_no == grn_no))
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateGrnError(grn_no)

        released = (
            await session.execute(
                select(OutboundTransaction.inbound_id).where(
                    OutboundTransaction.inbound_id.in_([row.Inbound.inbound_id for row in rows])
                )
            )
        ).scalars().all()
        if released:
            raise BusinessLogicError(
                f"Inbound records already released: {sorted(set(released))}",
                error_code="ALREADY_RELEASED",
            )

        outbound = Outbound(
            grn_no=grn_no,
            job_identifier=payload.job_identifier,
            release_date=datetime.utcnow(),
            driver_name=payload.driver_name,
            driver_identity_no=payload.driver_identity_no,
            truck_plate_no=payload.truck_plate_no,
            warehouse_staff=payload.warehouse_staff,
            warehouse_supervisor=payload.warehouse_supervisor,
            user_id=payload.user_id,
            driver_signature=_decode_signature(payload.driver_signature),
            warehouse_staff_signature=_decode_signature(payload.warehouse_staff_signature),
            warehouse_supervisor_signature=_decode_signature(payload.warehouse_supervisor_signature),
            uom=payload.uom,
        )
        session.add(outbound)
        await session.flush()

        # ── One snapshot row per lot ─────────────────────────
        for row in rows:
            inbound, schedule = row.Inbound, row.ScheduleOutbound
            session.add(OutboundTransaction(
                outbound_id=outbound.outbound_id,
                inbound_id=inbound.inbound_id,
                schedule_outbound_id=schedule.schedule_outbound_id,
                job_no=inbound.job_no,
                lot_no=inbound.lot_no,
                commodity=row.commodity_name,
                brand=row.brand_name,
                shape=row.shape_name,
                ex_lme_warehouse=row.ex_lme_warehouse_name,
                ex_warehouse_lot=inbound.ex_warehouse_lot,
                ex_warehouse_warrant=inbound.ex_warehouse_warrant,
                no_of_bundle=inbound.no_of_bundle or 0,
                gross_weight=inbound.gross_weight,
                net_weight=inbound.net_weight,
                actual_weight=inbound.actual_weight,
                release_date=outbound.release_date,
                release_warehouse=schedule.release_warehouse,
                storage_release_location=schedule.storage_release_location,
                transport_vendor=schedule.transport_vendor,
                lot_release_weight=schedule.lot_release_weight,
                outbound_type=schedule.outbound_type,
                export_date=schedule.export_date,
                stuffing_date=schedule.stuffing_date,
                container_no=schedule.container_no,
                seal_no=schedule.seal_no,
                outbounded_by=payload.user_id,
            ))

        now = datetime.utcnow()
        await session.execute(
            update(SelectedInbound)
            .where(SelectedInbound.selected_inbound_id.in_(selected_ids))
            .values(is_outbounded=True, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        await session.execute(
            update(InboundBundle)
            .where(InboundBundle.inbound_id.in_([row.Inbound.inbound_id for row in rows]))
            .values(is_outbounded=True, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        await session.flush()

        first = rows[0]
        document = GrnDocument(
            our_reference=outbound_reference(payload.job_identifier),
            grn_no=grn_no,
            release_date=format_release_date(first.ScheduleOutbound.release_date),
            warehouse=first.ScheduleOutbound.release_warehouse,
            container_and_seal_no=_container_and_seal(
                first.ScheduleOutbound.container_no, first.ScheduleOutbound.seal_no
            ),
            commodity=first.commodity_name,
            shape=first.shape_name,
            brand=first.brand_name,
            uom=payload.uom,
            lots=[
                GrnLot(
                    lot_no=grn_lot_number(row.Inbound.job_no, row.Inbound.lot_no),
                    bundles=row.Inbound.no_of_bundle or 0,
                    gross_weight_mt=grn_weight(row.Inbound.gross_weight),
                    net_weight_mt=grn_weight(row.Inbound.net_weight),
                )
                for row in rows
            ],
            driver_name=outbound.driver_name,
            driver_identity_no=outbound.driver_identity_no,
            truck_plate_no=outbound.truck_plate_no,
            warehouse_staff=outbound.warehouse_staff,
            warehouse_supervisor=outbound.warehouse_supervisor,
            driver_signature=outbound.driver_signature,
            warehouse_staff_signature=outbound.warehouse_staff_signature,
            warehouse_supervisor_signature=outbound.warehouse_supervisor_signature,
        )
        rendered = await _render(renderer, document)

        outbound.grn_image = rendered.pdf_path
        outbound.grn_preview_image = rendered.preview_path
        outbound.file_size = len(rendered.pdf_bytes)

        await log_activity(
            session, payload.user_id,
            action="grn_created",
            entity_type="outbound",
            entity_id=outbound.outbound_id,
            entity_code=grn_no,
            summary=f"GRN {grn_no} issued for {len(rows)} lots",
            details={"selected_inbound_ids": selected_ids},
        )
        await session.flush()
        logger.info("GRN %s created with %d transactions", grn_no, len(rows))
        return OutboundDocument(outbound=outbound, transactions=len(rows), rendered=rendered)


async def update_and_regenerate_grn(
    outbound_id: int,
    data: UpdateGrnRequest,
    renderer: GrnRenderer,
    user_id: int | None = None,
    db: AsyncSession | None = None,
) -> OutboundDocument:
    """Apply GRN edits to the header and lot snapshots, then render again."""
    changes = data.model_dump(exclude_unset=True, exclude={"updated_brands", "user_id"})

    async with transaction_scope(db) as session:
        outbound = await session.get(Outbound, outbound_id)
        if outbound is None:
            raise ResourceNotFoundError("Outbound", outbound_id)

        transactions = (
            await session.execute(
                select(OutboundTransaction)
                .where(OutboundTransaction.outbound_id == outbound_id)
                .order_by(OutboundTransaction.job_no, OutboundTransaction.lot_no)
            )
        ).scalars().all()
        by_id = {t.outbound_transaction_id: t for t in transactions}

        for brand in data.updated_brands:
            if brand.outbound_transaction_id not in by_id:
                raise BusinessLogicError(
                    f"Transaction {brand.outbound_transaction_id} is not part of GRN {outbound.grn_no}"
                )

        changed: list[str] = []
        if "uom" in changes and changes["uom"] != outbound.uom:
            outbound.uom = changes["uom"]
            changed.append("uom")
        if changes.get("release_date") is not None:
            outbound.release_date = changes["release_date"]

        for field_name in _EDITABLE_TRANSACTION_FIELDS:
            if field_name not in changes:
                continue
            for txn in transactions:
                setattr(txn, field_name, changes[field_name])
            changed.append(field_name)

        for brand in data.updated_brands:
            txn = by_id[brand.outbound_transaction_id]
            if txn.brand != brand.new_brand:
                txn.brand = brand.new_brand
                changed.append(f"brand:{txn.job_no}-{txn.lot_no}")
        await session.flush()

        first = transactions[0] if transactions else None
        document = GrnDocument(
            our_reference=outbound_reference(outbound.job_identifier),
            grn_no=outbound.grn_no,
            release_date=format_release_date(first.release_date if first else outbound.release_date),
            warehouse=first.release_warehouse if first else None,
            container_and_seal_no=_container_and_seal(first.container_no, first.seal_no) if first else None,
            commodity=first.commodity if first else None,
            shape=first.shape if first else None,
            brand=first.brand if first else None,
            uom=outbound.uom,
            lots=[
                GrnLot(
                    lot_no=grn_lot_number(t.job_no, t.lot_no),
                    bundles=t.no_of_bundle or 0,
                    gross_weight_mt=grn_weight(t.gross_weight),
                    net_weight_mt=grn_weight(t.net_weight),
                )
                for t in transactions
            ],
            driver_name=outbound.driver_name,
            driver_identity_no=outbound.driver_identity_no,
            truck_plate_no=outbound.truck_plate_no,
            warehouse_staff=outbound.warehouse_staff,
            warehouse_supervisor=outbound.warehouse_supervisor,
            driver_signature=outbound.driver_signature,
            warehouse_staff_signature=outbound.warehouse_staff_signature,
            warehouse_supervisor_signature=outbound.warehouse_supervisor_signature,
        )
        rendered = await _render(renderer, document)

        outbound.grn_image = rendered.pdf_path
        outbound.grn_preview_image = rendered.preview_path
        outbound.file_size = len(rendered.pdf_bytes)

        await log_activity(
            session, user_id,
            action="grn_edited",
            entity_type="outbound",
            entity_id=outbound.outbound_id,
            entity_code=outbound.grn_no,
            summary=f"GRN {outbound.grn_no} edited",
            details={"fields_changed": changed},
        )
        await session.flush()
        logger.info("GRN %s regenerated (%s)", outbound.grn_no, ", ".join(changed) or "no changes")
        return OutboundDocument(outbound=outbound, transactions=len(transactions), rendered=rendered)
