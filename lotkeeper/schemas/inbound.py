"""Pydantic schemas for inbound scheduling, confirmation, reports and the office task list."""

from datetime import datetime
from typing import Literal

from pydantic import Field

from lotkeeper.schemas.common import CamelModel


# ── Confirmation ─────────────────────────────────────────────

class LotRef(CamelModel):
    lot_id: int


class ConfirmInboundRequest(CamelModel):
    """Payload for POST /inbounds/tasks-complete-inbound."""
    selected_lots: list[LotRef] = Field(..., min_length=1)
    user_id: int


class InboundOut(CamelModel):
    inbound_id: int
    job_no: str
    lot_no: int
    barcode_no: str | None = None
    no_of_bundle: int
    gross_weight: float | None = None
    net_weight: float | None = None
    actual_weight: float | None = None
    is_weighted: bool
    ex_warehouse_lot: str | None = None
    crew_lot_no: int | None = None
    user_id: int
    processed_id: int


class ConfirmInboundResponse(CamelModel):
    message: str
    inserted: list[InboundOut]


# ── Scheduling ───────────────────────────────────────────────

class ScheduleLotIn(CamelModel):
    lot_no: int = Field(..., ge=1)
    commodity: str | None = Field(None, max_length=100)
    brand: str | None = Field(None, max_length=100)
    shape: str | None = Field(None, max_length=100)
    ex_lme_warehouse: str | None = Field(None, max_length=150)
    inbound_warehouse: str | None = Field(None, max_length=150)
    ex_warehouse_location: str | None = Field(None, max_length=150)
    ex_warehouse_lot: str | None = Field(None, max_length=50)
    ex_warehouse_warrant: str | None = Field(None, max_length=50)
    expected_bundle_count: int = Field(0, ge=0)
    net_weight: float | None = None
    gross_weight: float | None = None


class ScheduleJobIn(CamelModel):
    lots: list[ScheduleLotIn] = Field(..., min_length=1)


class ScheduleInboundRequest(CamelModel):
    """Payload for POST /inbounds/schedule; ``jobDataMap`` is keyed by job number."""
    inbound_date: datetime
    job_data_map: dict[str, ScheduleJobIn] = Field(..., min_length=1)


class ScheduledJobOut(CamelModel):
    schedule_inbound_id: int
    job_no: str
    inbound_date: datetime | None = None
    lot_count: int


class ScheduleInboundResponse(CamelModel):
    message: str
    schedules: list[ScheduledJobOut]


# ── Reports ──────────────────────────────────────────────────

class ReportRequest(CamelModel):
    """Payload for the lot discrepancy / duplicate report endpoints."""
    lot_ids: list[int] = Field(..., min_length=1)
    reported_by: int | None = None


class JobReportRequest(CamelModel):
    job_no: str = Field(..., min_length=1, max_length=50)
    reported_by: int | None = None
    discrepancy_type: str | None = Field(None, max_length=50)


class ResolveReportRequest(CamelModel):
    lot_id: int
    report_status: Literal["accepted", "declined"]
    resolved_by: int
    kind: Literal["discrepancy", "duplicate"] = "discrepancy"


class ResolveJobReportRequest(CamelModel):
    job_no: str = Field(..., min_length=1, max_length=50)
    report_status: Literal["accepted", "declined"]
    resolved_by: int


class JobReportOut(CamelModel):
    job_no: str
    discrepancy_type: str | None = None
    report_status: str
    reported_by: int | None = None
    reported_on: datetime
    resolved_by: int | None = None
    resolved_on: datetime | None = None


class ReportOut(CamelModel):
    lot_id: int
    report_status: str
    reported_by: int | None = None
    reported_on: datetime
    resolved_by: int | None = None
    resolved_on: datetime | None = None


class ReportResponse(CamelModel):
    message: str
    reports: list[ReportOut]


class JobReportResponse(CamelModel):
    message: str
    processed: int


class ReverseInboundResponse(CamelModel):
    message: str
    inbound_id: int
    job_no: str
    lot_no: int


# ── Office pending-inbound list ──────────────────────────────

class OfficeLotTask(CamelModel):
    lot_id: int
    job_no: str
    lot_no: int
    commodity: str | None = None
    brand: str | None = None
    shape: str | None = None
    expected_bundle_count: int
    ex_warehouse_lot: str | None = None
    inbound_date: datetime | None = None
    report: bool
    report_duplicate: bool
    scheduled_by: str | None = None
