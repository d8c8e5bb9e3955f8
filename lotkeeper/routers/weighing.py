"""Weighing router: actual weights and crew lot numbers.

Endpoints:
    POST /actual-weight/save         Replace bundles and record actual weight
    POST /actual-weight/crew-lot-no  Apply a crew lot number
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.database import get_db
from lotkeeper.middleware.exceptions import ResourceNotFoundError
from lotkeeper.schemas.weighing import (
    BundleOut,
    CrewLotNoOut,
    CrewLotNoRequest,
    SaveWeighingRequest,
    WeighingOut,
)
from lotkeeper.services.crew_lot import resolve_crew_target_id, update_crew_lot_no
from lotkeeper.services.weighing import resolve_target_id, save_weighing

router = APIRouter()


@router.post("/save", response_model=WeighingOut)
async def save_actual_weight(
    body: SaveWeighingRequest,
    db: AsyncSession = Depends(get_db),
):
    target_id = await resolve_target_id(
        db,
        body.is_inbound,
        body.id,
        job_no=body.job_no,
        lot_no=body.lot_no,
        ex_warehouse_lot=body.ex_warehouse_lot,
    )
    if target_id is None:
        raise ResourceNotFoundError(
            "Inbound" if body.is_inbound else "Lot",
            body.ex_warehouse_lot or f"{body.job_no} / {body.lot_no}",
        )

    result = await save_weighing(target_id, body.is_inbound, body.actual_weight, body.bundles, db=db)
    return WeighingOut(
        target_id=result.target_id,
        is_inbound=result.is_inbound,
        counterpart_id=result.counterpart_id,
        actual_weight=result.actual_weight,
        sticker_weight=result.sticker_weight,
        is_weighted=result.is_weighted,
        bundles=[BundleOut.model_validate(b) for b in result.bundles],
    )


@router.post("/crew-lot-no", response_model=CrewLotNoOut)
async def save_crew_lot_no(
    body: CrewLotNoRequest,
    db: AsyncSession = Depends(get_db),
):
    id_value = body.id
    if id_value is None and body.job_no and body.ex_warehouse_lot:
        id_value = await resolve_crew_target_id(db, body.is_inbound, body.job_no, body.ex_warehouse_lot)
    if id_value is None:
        raise ResourceNotFoundError("Inbound" if body.is_inbound else "Lot", body.ex_warehouse_lot)

    result = await update_crew_lot_no(id_value, body.is_inbound, body.crew_lot_no, db=db)
    return CrewLotNoOut.model_validate(result)
