"""Pydantic schemas for outbound scheduling and GRN documents."""

from datetime import datetime

from pydantic import Field

from lotkeeper.schemas.common import CamelModel


# ── Scheduling ───────────────────────────────────────────────

class ScheduleOutboundRequest(CamelModel):
    """Payload for POST /outbounds/schedule."""
    user_id: int
    inbound_ids: list[int] = Field(..., min_length=1)
    release_date: datetime | None = None
    release_warehouse: str | None = Field(None, max_length=150)
    storage_release_location: str | None = Field(None, max_length=150)
    transport_vendor: str | None = Field(None, max_length=150)
    lot_release_weight: float | None = Field(None, ge=0)
    outbound_type: str | None = Field(None, max_length=30)
    export_date: datetime | None = None
    stuffing_date: datetime | None = None
    delivery_date: datetime | None = None
    container_no: str | None = Field(None, max_length=50)
    seal_no: str | None = Field(None, max_length=50)


class ScheduleOutboundOut(CamelModel):
    schedule_outbound_id: int
    selected_inbound_ids: list[int]


class ConfirmSelectionRequest(CamelModel):
    schedule_outbound_id: int
    selected_inbound_ids: list[int] = Field(..., min_length=1)


class ConfirmSelectionOut(CamelModel):
    message: str
    confirmed_ids: list[int]


# ── GRN ──────────────────────────────────────────────────────

class GrnPreviewRequest(CamelModel):
    job_no: str = Field(..., min_length=1)
    selected_inbound_ids: list[int] = Field(..., min_length=1)


class GrnLotLine(CamelModel):
    lot_no: str
    bundles: int
    gross_weight_mt: str
    net_weight_mt: str


class CargoDetails(CamelModel):
    commodity: str | None = None
    shape: str | None = None
    brand: str | None = None


class GrnPreviewOut(CamelModel):
    release_date: str | None = None
    our_reference: str
    grn_no: str
    warehouse: str | None = None
    cargo_details: CargoDetails
    lots: list[GrnLotLine]


class CreateGrnRequest(CamelModel):
    """Payload for POST /outbounds/create-grn-and-transactions.

    Signatures are base64 PNG strings (data-URI prefix allowed).  When
    ``grn_no`` is omitted the next number for the job is issued.
    """
    schedule_outbound_id: int
    selected_inbound_ids: list[int] = Field(..., min_length=1)
    job_identifier: str = Field(..., min_length=1, max_length=50)
    user_id: int
    grn_no: str | None = Field(None, max_length=100)
    driver_name: str | None = Field(None, max_length=150)
    driver_identity_no: str | None = Field(None, max_length=50)
    truck_plate_no: str | None = Field(None, max_length=30)
    warehouse_staff: str | None = Field(None, max_length=150)
    warehouse_supervisor: str | None = Field(None, max_length=150)
    driver_signature: str | None = None
    warehouse_staff_signature: str | None = None
    warehouse_supervisor_signature: str | None = None
    uom: str | None = Field("MT", max_length=10)


class CreateGrnOut(CamelModel):
    message: str
    outbound_id: int
    grn_no: str
    transactions: int
    file_size: int
    pdf_base64: str
    preview_base64: str


class BrandUpdate(CamelModel):
    outbound_transaction_id: int
    new_brand: str = Field(..., min_length=1, max_length=100)


class UpdateGrnRequest(CamelModel):
    """Editable GRN fields; anything left out keeps its current value."""
    release_date: datetime | None = None
    release_warehouse: str | None = Field(None, max_length=150)
    transport_vendor: str | None = Field(None, max_length=150)
    container_no: str | None = Field(None, max_length=50)
    seal_no: str | None = Field(None, max_length=50)
    uom: str | None = Field(None, max_length=10)
    updated_brands: list[BrandUpdate] = Field(default_factory=list)
    user_id: int | None = None


class UpdateGrnOut(CamelModel):
    message: str
    outbound_id: int
    grn_no: str
    file_size: int
    pdf_base64: str
    preview_base64: str
