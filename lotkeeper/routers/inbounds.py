"""Inbound router: scheduling, confirmation, reports, reversal and the office task list.

Endpoints:
    POST /inbounds/schedule                   Schedule lots for arrival
    POST /inbounds/tasks-complete-inbound     Confirm pending lots
    POST /inbounds/tasks-report-confirmation  Report lot discrepancies
    POST /inbounds/tasks-report-duplicate     Report duplicate lots
    POST /inbounds/tasks-report-job           Report a whole job
    POST /inbounds/reports/resolve            Accept / decline a report
    POST /inbounds/reports/resolve-job        Accept / decline a job report
    POST /inbounds/{inbound_id}/reverse       Undo a confirmation
    GET  /inbounds/tasks-office               Pending lots for the office
"""

from datetime import date, datetime, time, timedelta
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.auth.deps import require_role
from lotkeeper.database import get_db
from lotkeeper.middleware.exceptions import ResourceNotFoundError
from lotkeeper.models.lot import LOT_PENDING, Lot
from lotkeeper.models.report import REPORT_PENDING, JobReport
from lotkeeper.models.schedule import ScheduleInbound
from lotkeeper.models.user import User, UserRole
from lotkeeper.schemas.common import PaginatedResponse
from lotkeeper.schemas.inbound import (
    ConfirmInboundRequest,
    ConfirmInboundResponse,
    InboundOut,
    JobReportOut,
    JobReportRequest,
    JobReportResponse,
    OfficeLotTask,
    ReportOut,
    ReportRequest,
    ReportResponse,
    ResolveJobReportRequest,
    ResolveReportRequest,
    ReverseInboundResponse,
    ScheduledJobOut,
    ScheduleInboundRequest,
    ScheduleInboundResponse,
)
from lotkeeper.services.confirm_inbound import confirm_lots, reverse_inbound
from lotkeeper.services.reports import (
    report_discrepancy,
    report_duplicate,
    report_job_discrepancy,
    resolve_job_report,
    resolve_report,
)
from lotkeeper.services.schedule_inbound import schedule_inbound
from lotkeeper.utils.filters import Predicate, any_of, build_where

router = APIRouter()


# ── Scheduling ───────────────────────────────────────────────

@router.post("/schedule", response_model=ScheduleInboundResponse, status_code=status.HTTP_201_CREATED)
async def schedule(
    body: ScheduleInboundRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(UserRole.ADMINISTRATOR, UserRole.OFFICE)),
):
    scheduled = await schedule_inbound(body, user.user_id, db=db)
    return ScheduleInboundResponse(
        message=f"{sum(len(job.lots) for job in scheduled)} lot(s) scheduled",
        schedules=[
            ScheduledJobOut(
                schedule_inbound_id=job.schedule.schedule_inbound_id,
                job_no=job.schedule.job_no,
                inbound_date=job.schedule.inbound_date,
                lot_count=len(job.lots),
            )
            for job in scheduled
        ],
    )


# ── Confirmation ─────────────────────────────────────────────

@router.post("/tasks-complete-inbound", response_model=ConfirmInboundResponse)
async def complete_inbound(
    body: ConfirmInboundRequest,
    db: AsyncSession = Depends(get_db),
):
    inserted = await confirm_lots([ref.lot_id for ref in body.selected_lots], body.user_id, db=db)
    return ConfirmInboundResponse(
        message=f"{len(inserted)} of {len(body.selected_lots)} lot(s) confirmed",
        inserted=[InboundOut.model_validate(i) for i in inserted],
    )


# ── Reports ──────────────────────────────────────────────────

@router.post("/tasks-report-confirmation", response_model=ReportResponse)
async def report_lot_discrepancy(
    body: ReportRequest,
    db: AsyncSession = Depends(get_db),
):
    reports = await report_discrepancy(body.lot_ids, body.reported_by, db=db)
    return ReportResponse(
        message=f"{len(reports)} discrepancy report(s) raised",
        reports=[ReportOut.model_validate(r) for r in reports],
    )


@router.post("/tasks-report-duplicate", response_model=ReportResponse)
async def report_lot_duplicate(
    body: ReportRequest,
    db: AsyncSession = Depends(get_db),
):
    reports = await report_duplicate(body.lot_ids, body.reported_by, db=db)
    return ReportResponse(
        message=f"{len(reports)} duplicate report(s) raised",
        reports=[ReportOut.model_validate(r) for r in reports],
    )


@router.post("/tasks-report-job", response_model=JobReportResponse)
async def report_job(
    body: JobReportRequest,
    db: AsyncSession = Depends(get_db),
):
    processed = await report_job_discrepancy(
        body.job_no, body.reported_by, body.discrepancy_type, db=db
    )
    return JobReportResponse(
        message=f"{processed} lot(s) in job {body.job_no} flagged",
        processed=processed,
    )


@router.post("/reports/resolve", response_model=ReportOut)
async def resolve_lot_report(
    body: ResolveReportRequest,
    db: AsyncSession = Depends(get_db),
):
    report = await resolve_report(
        body.lot_id, body.report_status, body.resolved_by, kind=body.kind, db=db
    )
    if report is None:
        raise ResourceNotFoundError(f"Pending {body.kind} report for lot", body.lot_id)
    return ReportOut.model_validate(report)


@router.post("/reports/resolve-job", response_model=JobReportOut)
async def resolve_job_discrepancy(
    body: ResolveJobReportRequest,
    db: AsyncSession = Depends(get_db),
):
    report = await resolve_job_report(body.job_no, body.report_status, body.resolved_by, db=db)
    if report is None:
        raise ResourceNotFoundError("Pending job report for job", body.job_no)
    return JobReportOut.model_validate(report)


# ── Reversal ─────────────────────────────────────────────────

@router.post("/{inbound_id}/reverse", response_model=ReverseInboundResponse)
async def reverse(
    inbound_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(UserRole.ADMINISTRATOR, UserRole.OFFICE)),
):
    result = await reverse_inbound(inbound_id, user_id=user.user_id, db=db)
    return ReverseInboundResponse(
        message=f"Inbound {inbound_id} reversed",
        inbound_id=result["inboundId"],
        job_no=result["jobNo"],
        lot_no=result["lotNo"],
    )


# ── Office task list ─────────────────────────────────────────

@router.get("/tasks-office", response_model=PaginatedResponse[OfficeLotTask])
async def office_tasks(
    search: str | None = Query(None),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    scheduled_by: str | None = Query(None, alias="scheduledBy"),
    commodity: str | None = Query(None),
    brand: str | None = Query(None),
    shape: str | None = Query(None),
    quantity: int | None = Query(None, ge=0),
    lot_type: Literal["Normal", "Lot Discrepancy", "Job Discrepancy", "Duplicate"] | None = Query(
        None, alias="type"
    ),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    open_job_report = exists().where(
        JobReport.job_no == Lot.job_no, JobReport.report_status == REPORT_PENDING
    )

    preds = [Predicate(Lot.status, "eq", LOT_PENDING)]
    if search:
        q = f"%{search.strip()}%"
        preds.append(any_of(
            Predicate(Lot.job_no, "ilike", q),
            Predicate(Lot.ex_warehouse_lot, "ilike", q),
            Predicate(Lot.commodity, "ilike", q),
            Predicate(Lot.brand, "ilike", q),
            Predicate(Lot.shape, "ilike", q),
        ))
    if start_date and end_date:
        preds.append(Predicate(Lot.inbound_date, "ge", datetime.combine(start_date, time.min)))
        preds.append(Predicate(
            Lot.inbound_date, "lt", datetime.combine(end_date + timedelta(days=1), time.min)
        ))
    if scheduled_by:
        preds.append(Predicate(User.username, "eq", scheduled_by))
    if commodity:
        preds.append(Predicate(Lot.commodity, "eq", commodity))
    if brand:
        preds.append(Predicate(Lot.brand, "eq", brand))
    if shape:
        preds.append(Predicate(Lot.shape, "eq", shape))
    if quantity is not None:
        preds.append(Predicate(Lot.expected_bundle_count, "eq", quantity))

    if lot_type == "Normal":
        preds += [
            Predicate(Lot.report, "is_true", False),
            Predicate(Lot.report_duplicate, "is_true", False),
            Predicate(open_job_report, "exists", False),
        ]
    elif lot_type == "Lot Discrepancy":
        preds.append(Predicate(Lot.report, "is_true", True))
    elif lot_type == "Job Discrepancy":
        preds.append(Predicate(open_job_report, "exists", True))
    elif lot_type == "Duplicate":
        preds.append(Predicate(Lot.report_duplicate, "is_true", True))

    base_stmt = (
        select(Lot, User.username)
        .outerjoin(ScheduleInbound, Lot.schedule_inbound_id == ScheduleInbound.schedule_inbound_id)
        .outerjoin(User, ScheduleInbound.user_id == User.user_id)
        .where(build_where(preds))
    )

    total = await db.scalar(select(func.count()).select_from(base_stmt.subquery())) or 0
    rows = (
        await db.execute(
            base_stmt.order_by(Lot.inbound_date.asc(), Lot.job_no, Lot.lot_no)
            .limit(limit)
            .offset(offset)
        )
    ).all()

    return PaginatedResponse[OfficeLotTask](
        items=[
            OfficeLotTask.model_validate(lot).model_copy(update={"scheduled_by": username})
            for lot, username in rows
        ],
        total=total,
        limit=limit,
        offset=offset,
    )
