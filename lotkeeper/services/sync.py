"""Offline sync: replay a batch of queued client actions in one transaction.

Each job yields one result:

  - OK       → handler ran; ``processed`` counts rows affected where useful
  - FAILED   → payload was not valid JSON; the rest of the batch continues
  - SKIPPED  → unknown ``action_type``

Any other error aborts the batch: everything already applied is rolled back
and a SyncBatchError naming the failing job is raised.
"""

import json
import logging
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.database import transaction_scope
from lotkeeper.middleware.exceptions import BusinessLogicError, ResourceNotFoundError, SyncBatchError
from lotkeeper.schemas.inbound import LotRef
from lotkeeper.schemas.outbound import UpdateGrnRequest
from lotkeeper.schemas.sync import SyncJob, SyncResult
from lotkeeper.schemas.weighing import BundleIn, RepackRequest
from lotkeeper.services.confirm_inbound import confirm_lots
from lotkeeper.services.crew_lot import resolve_crew_target_id, update_crew_lot_no
from lotkeeper.services.grn_document import GrnRenderer
from lotkeeper.services.outbound import update_and_regenerate_grn
from lotkeeper.services.repack import save_repack
from lotkeeper.services.reports import report_discrepancy, report_job_discrepancy
from lotkeeper.services.weighing import resolve_target_id, save_weighing

logger = logging.getLogger("lotkeeper.sync")

STATUS_OK = "OK"
STATUS_FAILED = "FAILED"
STATUS_SKIPPED = "SKIPPED"


class _BatchContext:
    def __init__(self, db: AsyncSession, user_id: int, renderer: GrnRenderer, uploads_dir: str):
        self.db = db
        self.user_id = user_id
        self.renderer = renderer
        self.uploads_dir = uploads_dir


Handler = Callable[[_BatchContext, SyncJob, dict], Awaitable[int | None]]


def parse_payload(payload: Any) -> dict:
    """Decode a job payload (JSON text or an already-decoded object)."""
    if payload is None:
        return {}
    if isinstance(payload, (str, bytes)):
        payload = json.loads(payload)
    if not isinstance(payload, dict):
        raise ValueError("payload must be a JSON object")
    return payload


def _lot_ids(items: list) -> list[int]:
    return [
        LotRef.model_validate(item).lot_id if isinstance(item, dict) else int(item)
        for item in items or []
    ]


def _int_target(value, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BusinessLogicError(f"Invalid {label}: {value}") from None


# ── Handlers ─────────────────────────────────────────────────

async def _confirm_inbound(ctx: _BatchContext, job: SyncJob, payload: dict) -> int:
    inserted = await confirm_lots(_lot_ids(payload.get("selectedLots")), ctx.user_id, db=ctx.db)
    return len(inserted)


async def _report_discrepancy(ctx: _BatchContext, job: SyncJob, payload: dict) -> int:
    reported_by = payload.get("reportedBy") or ctx.user_id
    reports = await report_discrepancy(_lot_ids(payload.get("lotIds")), reported_by, db=ctx.db)
    return len(reports)


async def _report_job_discrepancy(ctx: _BatchContext, job: SyncJob, payload: dict) -> int:
    reported_by = payload.get("reportedBy") or ctx.user_id
    return await report_job_discrepancy(
        payload.get("jobNo"), reported_by, payload.get("discrepancyType"), db=ctx.db
    )


async def _update_grn(ctx: _BatchContext, job: SyncJob, payload: dict) -> None:
    outbound_id = _int_target(job.target_id, "outboundId")
    data = UpdateGrnRequest.model_validate(payload)
    await update_and_regenerate_grn(outbound_id, data, ctx.renderer, user_id=ctx.user_id, db=ctx.db)


async def _update_crew_lot_no(ctx: _BatchContext, job: SyncJob, payload: dict) -> int:
    is_inbound = bool(payload.get("isInbound", True))
    id_value = payload.get("id") or job.target_id
    if not id_value and payload.get("jobNo") and payload.get("exWarehouseLot"):
        id_value = await resolve_crew_target_id(
            ctx.db, is_inbound, payload["jobNo"], payload["exWarehouseLot"]
        )
    if not id_value:
        raise ResourceNotFoundError("Crew lot target", payload.get("exWarehouseLot"))

    result = await update_crew_lot_no(
        _int_target(id_value, "id"),
        is_inbound,
        _int_target(payload.get("crewLotNo"), "crewLotNo"),
        user_id=ctx.user_id,
        db=ctx.db,
    )
    return result.inbounds_updated + result.lots_updated


async def _save_actual_weight(ctx: _BatchContext, job: SyncJob, payload: dict) -> int:
    is_inbound = bool(payload.get("isInbound", True))
    target_id = await resolve_target_id(
        ctx.db,
        is_inbound,
        payload.get("id") or job.target_id,
        job_no=payload.get("jobNo"),
        lot_no=payload.get("lotNo"),
        ex_warehouse_lot=payload.get("exWarehouseLot"),
    )
    if target_id is None:
        raise ResourceNotFoundError("Weighing target", payload.get("exWarehouseLot") or payload.get("lotNo"))

    bundles = [BundleIn.model_validate(b) for b in payload.get("bundles") or []]
    result = await save_weighing(
        _int_target(target_id, "id"),
        is_inbound,
        float(payload.get("actualWeight") or 0),
        bundles,
        user_id=ctx.user_id,
        db=ctx.db,
    )
    return len(result.bundles)


async def _save_repack(ctx: _BatchContext, job: SyncJob, payload: dict) -> int:
    data = RepackRequest.model_validate(payload)
    result = await save_repack(data, ctx.uploads_dir, user_id=ctx.user_id, db=ctx.db)
    return result.pieces


HANDLERS: dict[str, Handler] = {
    "CONFIRM_INBOUND": _confirm_inbound,
    "REPORT_DISCREPANCY": _report_discrepancy,
    "REPORT_JOB_DISCREPANCY": _report_job_discrepancy,
    "UPDATE_GRN": _update_grn,
    "UPDATE_CREW_LOT_NO": _update_crew_lot_no,
    "SAVE_ACTUAL_WEIGHT": _save_actual_weight,
    "SAVE_REPACK": _save_repack,
}


# ── Batch ────────────────────────────────────────────────────

async def process_batch(
    jobs: list[SyncJob],
    user_id: int,
    renderer: GrnRenderer,
    uploads_dir: str,
    db: AsyncSession | None = None,
) -> list[SyncResult]:
    """Apply every job in order; all-or-nothing apart from FAILED/SKIPPED jobs."""
    logger.info("Received %d jobs to process", len(jobs))

    async with transaction_scope(db) as session:
        ctx = _BatchContext(session, user_id, renderer, uploads_dir)
        results: list[SyncResult] = []

        for job in jobs:
            try:
                payload = parse_payload(job.payload)
            except ValueError as exc:
                logger.warning("Failed to parse payload for job %s: %s", job.id, exc)
                results.append(SyncResult(job_id=job.id, status=STATUS_FAILED, error=str(exc)))
                continue

            handler = HANDLERS.get(job.action_type)
            if handler is None:
                logger.warning("Unknown action_type %s on job %s", job.action_type, job.id)
                results.append(SyncResult(job_id=job.id, status=STATUS_SKIPPED))
                continue

            logger.info("Processing job %s of type %s", job.id, job.action_type)
            try:
                processed = await handler(ctx, job, payload)
            except Exception as exc:
                logger.error(
                    "Sync job %s (%s) failed, rolling back batch: %s",
                    job.id, job.action_type, exc,
                )
                raise SyncBatchError(job.id, str(exc)) from exc
            results.append(SyncResult(job_id=job.id, status=STATUS_OK, processed=processed))

        await session.flush()
        logger.info("Batch of %d jobs processed", len(jobs))
        return results
