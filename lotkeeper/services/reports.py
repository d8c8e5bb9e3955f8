"""Discrepancy and duplicate reporting against lots.

Reports are advisory: they set ``Lot.report`` / ``Lot.report_duplicate``
until resolved but never block confirmation, weighing or release.

Repeat reports for the same lot are accepted and each stays open until
resolved.  Resolution closes the most recent open report; the lot flag is
then recomputed from whatever reports of that kind remain open, so the flag
always answers "is there an open report".  A pending job report counts as an
open discrepancy on every lot of its job until ``resolve_job_report`` closes
it.
"""

import logging
from datetime import datetime

from sqlalchemy import exists, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.database import transaction_scope
from lotkeeper.middleware.exceptions import BusinessLogicError
from lotkeeper.models.lot import LOT_PENDING, LOT_RECEIVED, Lot
from lotkeeper.models.report import (
    REPORT_ACCEPTED,
    REPORT_DECLINED,
    REPORT_PENDING,
    JobReport,
    LotDuplicate,
    LotReport,
)
from lotkeeper.utils.activity import log_activity

logger = logging.getLogger(__name__)

KIND_DISCREPANCY = "discrepancy"
KIND_DUPLICATE = "duplicate"

_REPORT_MODELS = {
    KIND_DISCREPANCY: (LotReport, "report"),
    KIND_DUPLICATE: (LotDuplicate, "report_duplicate"),
}


def _open_report_exists(kind: str, lot):
    """EXISTS clause: does *lot* still have an open report of *kind*.

    A pending job report counts as an open discrepancy on every lot of
    the job.
    """
    model, _ = _REPORT_MODELS[kind]
    clause = exists().where(model.lot_id == lot.lot_id, model.report_status == REPORT_PENDING)
    if kind == KIND_DISCREPANCY:
        clause = or_(
            clause,
            exists().where(JobReport.job_no == lot.job_no, JobReport.report_status == REPORT_PENDING),
        )
    return clause


async def _raise_reports(
    lot_ids: list[int],
    reported_by: int | None,
    kind: str,
    db: AsyncSession | None,
) -> list:
    model, flag = _REPORT_MODELS[kind]
    async with transaction_scope(db) as session:
        created = []
        for lot_id in lot_ids:
            lot = await session.get(Lot, lot_id)
            if lot is None:
                logger.warning("Skipping %s report: lot %s not found", kind, lot_id)
                continue

            report = model(
                lot_id=lot_id,
                reported_by=reported_by,
                report_status=REPORT_PENDING,
                reported_on=datetime.utcnow(),
            )
            session.add(report)
            setattr(lot, flag, True)
            created.append(report)

            await log_activity(
                session, reported_by,
                action="reported",
                entity_type="lot",
                entity_id=lot_id,
                entity_code=f"{lot.job_no}-{lot.lot_no}",
                summary=f"Raised {kind} report on lot {lot.lot_no} of {lot.job_no}",
            )

        await session.flush()
        return created


async def report_discrepancy(
    lot_ids: list[int],
    reported_by: int | None,
    db: AsyncSession | None = None,
) -> list[LotReport]:
    """Open a pending discrepancy report per lot and flag the lot."""
    return await _raise_reports(lot_ids, reported_by, KIND_DISCREPANCY, db)


async def report_duplicate(
    lot_ids: list[int],
    reported_by: int | None,
    db: AsyncSession | None = None,
) -> list[LotDuplicate]:
    """Open a pending duplicate report per lot and flag the lot."""
    return await _raise_reports(lot_ids, reported_by, KIND_DUPLICATE, db)


async def report_job_discrepancy(
    job_no: str,
    reported_by: int | None,
    discrepancy_type: str | None,
    db: AsyncSession | None = None,
) -> int:
    """Flag every unflagged Pending/Received lot of a job.

    Inserts one JobReport when at least one lot was flagged.  Returns the
    number of lots flagged.
    """
    async with transaction_scope(db) as session:
        criteria = (
            Lot.job_no == job_no,
            Lot.status.in_((LOT_PENDING, LOT_RECEIVED)),
            Lot.report.is_not(True),
        )
        lot_ids = (await session.execute(select(Lot.lot_id).where(*criteria))).scalars().all()
        if not lot_ids:
            logger.warning("Job %s has no lots to flag", job_no)
            return 0

        session.add(JobReport(
            job_no=job_no,
            reported_by=reported_by,
            discrepancy_type=discrepancy_type,
            report_status=REPORT_PENDING,
            reported_on=datetime.utcnow(),
        ))
        await session.execute(
            update(Lot)
            .where(Lot.lot_id.in_(lot_ids))
            .values(report=True, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await log_activity(
            session, reported_by,
            action="reported",
            entity_type="job",
            entity_code=job_no,
            summary=f"Raised job discrepancy on {job_no} ({len(lot_ids)} lots)",
            details={"discrepancy_type": discrepancy_type, "lot_ids": list(lot_ids)},
        )
        await session.flush()
        return len(lot_ids)


async def resolve_report(
    lot_id: int,
    decision: str,
    resolved_by: int,
    kind: str = KIND_DISCREPANCY,
    db: AsyncSession | None = None,
):
    """Accept or decline the most recent pending report of *kind* for a lot.

    Returns the resolved report, or None when the lot has no open report.
    """
    if decision not in (REPORT_ACCEPTED, REPORT_DECLINED):
        raise BusinessLogicError(f"Unknown report decision: {decision}")
    if kind not in _REPORT_MODELS:
        raise BusinessLogicError(f"Unknown report kind: {kind}")
    model, flag = _REPORT_MODELS[kind]

    async with transaction_scope(db) as session:
        lot = await session.get(Lot, lot_id)
        if lot is None:
            logger.warning("Cannot resolve %s report: lot %s not found", kind, lot_id)
            return None

        report = (
            await session.execute(
                select(model)
                .where(model.lot_id == lot_id, model.report_status == REPORT_PENDING)
                .order_by(model.reported_on.desc(), model.__mapper__.primary_key[0].desc())
                .limit(1)
            )
        ).scalar_one_or_none()
        if report is None:
            logger.warning("Lot %s has no pending %s report", lot_id, kind)
            return None

        now = datetime.utcnow()
        report.report_status = decision
        report.resolved_by = resolved_by
        report.resolved_on = now
        if kind == KIND_DUPLICATE:
            report.is_resolved = True
            lot.is_duplicated = decision == REPORT_ACCEPTED
        await session.flush()

        still_open = (
            await session.execute(select(_open_report_exists(kind, lot)))
        ).scalar()
        setattr(lot, flag, bool(still_open))

        await log_activity(
            session, resolved_by,
            action="resolved",
            entity_type="lot",
            entity_id=lot_id,
            entity_code=f"{lot.job_no}-{lot.lot_no}",
            summary=f"{decision.capitalize()} {kind} report on lot {lot.lot_no} of {lot.job_no}",
        )
        await session.flush()
        return report


async def resolve_job_report(
    job_no: str,
    decision: str,
    resolved_by: int,
    db: AsyncSession | None = None,
) -> JobReport | None:
    """Accept or decline the open job reports of *job_no*.

    Every pending job report of the job is closed; ``Lot.report`` is then
    recomputed for the job's lots from the lot reports still open.  Returns
    the most recent job report closed, or None when none was open.
    """
    if decision not in (REPORT_ACCEPTED, REPORT_DECLINED):
        raise BusinessLogicError(f"Unknown report decision: {decision}")

    async with transaction_scope(db) as session:
        reports = (
            await session.execute(
                select(JobReport)
                .where(JobReport.job_no == job_no, JobReport.report_status == REPORT_PENDING)
                .order_by(JobReport.reported_on.desc(), JobReport.job_report_id.desc())
            )
        ).scalars().all()
        if not reports:
            logger.warning("Job %s has no pending job report", job_no)
            return None

        now = datetime.utcnow()
        for report in reports:
            report.report_status = decision
            report.resolved_by = resolved_by
            report.resolved_on = now
        await session.flush()

        open_lot_report = exists().where(
            LotReport.lot_id == Lot.lot_id, LotReport.report_status == REPORT_PENDING
        )
        cleared = (
            await session.execute(
                select(Lot.lot_id).where(Lot.job_no == job_no, Lot.report.is_(True), ~open_lot_report)
            )
        ).scalars().all()
        if cleared:
            await session.execute(
                update(Lot)
                .where(Lot.lot_id.in_(cleared))
                .values(report=False, updated_at=now)
                .execution_options(synchronize_session="fetch")
            )

        await log_activity(
            session, resolved_by,
            action="resolved",
            entity_type="job",
            entity_code=job_no,
            summary=f"{decision.capitalize()} job discrepancy on {job_no}",
            details={"job_reports": len(reports), "lot_ids_cleared": list(cleared)},
        )
        await session.flush()
        logger.info("Job %s report %s; %d lot flag(s) cleared", job_no, decision, len(cleared))
        return reports[0]
