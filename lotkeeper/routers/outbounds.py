"""Outbound router: release scheduling and GRN documents.

Endpoints:
    POST /outbounds/schedule                      Schedule inbounds for release
    POST /outbounds/confirm                       Confirm a selection
    POST /outbounds/grn-preview                   Prospective GRN for a selection
    POST /outbounds/create-grn-and-transactions   Issue the GRN (PDF + preview)
    PUT  /outbounds/{outbound_id}/grn             Edit a GRN and render it again
"""

import base64

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.database import get_db
from lotkeeper.middleware.exceptions import ResourceNotFoundError
from lotkeeper.schemas.outbound import (
    ConfirmSelectionOut,
    ConfirmSelectionRequest,
    CreateGrnOut,
    CreateGrnRequest,
    GrnPreviewOut,
    GrnPreviewRequest,
    ScheduleOutboundOut,
    ScheduleOutboundRequest,
    UpdateGrnOut,
    UpdateGrnRequest,
)
from lotkeeper.services.grn_document import GrnRenderer, get_grn_renderer
from lotkeeper.services.outbound import (
    confirm_outbound_selection,
    create_outbound_document,
    get_grn_details_for_selection,
    schedule_outbound,
    update_and_regenerate_grn,
)

router = APIRouter()


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@router.post("/schedule", response_model=ScheduleOutboundOut, status_code=status.HTTP_201_CREATED)
async def schedule(
    body: ScheduleOutboundRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await schedule_outbound(body, body.user_id, db=db)
    return ScheduleOutboundOut.model_validate(result)


@router.post("/confirm", response_model=ConfirmSelectionOut)
async def confirm_selection(
    body: ConfirmSelectionRequest,
    db: AsyncSession = Depends(get_db),
):
    confirmed = await confirm_outbound_selection(
        body.schedule_outbound_id, body.selected_inbound_ids, db=db
    )
    return ConfirmSelectionOut(
        message=f"{len(confirmed)} selection(s) confirmed for outbound",
        confirmed_ids=confirmed,
    )


@router.post("/grn-preview", response_model=GrnPreviewOut)
async def grn_preview(
    body: GrnPreviewRequest,
    db: AsyncSession = Depends(get_db),
):
    preview = await get_grn_details_for_selection(body.job_no, body.selected_inbound_ids, db)
    if preview is None:
        raise ResourceNotFoundError("Selected inbounds", body.selected_inbound_ids)
    return preview


@router.post(
    "/create-grn-and-transactions",
    response_model=CreateGrnOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_grn_and_transactions(
    body: CreateGrnRequest,
    db: AsyncSession = Depends(get_db),
    renderer: GrnRenderer = Depends(get_grn_renderer),
):
    doc = await create_outbound_document(body, renderer, db=db)
    return CreateGrnOut(
        message=f"{doc.transactions} transaction(s) created successfully.",
        outbound_id=doc.outbound.outbound_id,
        grn_no=doc.outbound.grn_no,
        transactions=doc.transactions,
        file_size=doc.outbound.file_size,
        pdf_base64=_b64(doc.rendered.pdf_bytes),
        preview_base64=_b64(doc.rendered.preview_bytes),
    )


@router.put("/{outbound_id}/grn", response_model=UpdateGrnOut)
async def update_grn(
    outbound_id: int,
    body: UpdateGrnRequest,
    db: AsyncSession = Depends(get_db),
    renderer: GrnRenderer = Depends(get_grn_renderer),
):
    doc = await update_and_regenerate_grn(outbound_id, body, renderer, user_id=body.user_id, db=db)
    return UpdateGrnOut(
        message="GRN updated successfully.",
        outbound_id=doc.outbound.outbound_id,
        grn_no=doc.outbound.grn_no,
        file_size=doc.outbound.file_size,
        pdf_base64=_b64(doc.rendered.pdf_bytes),
        preview_base64=_b64(doc.rendered.preview_bytes),
    )
