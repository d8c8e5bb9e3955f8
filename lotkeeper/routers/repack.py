"""Repack router.

Endpoints:
    POST /repack/bundle   Upsert a repacked bundle with pieces and photos
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.config import settings
from lotkeeper.database import get_db
from lotkeeper.schemas.weighing import RepackOut, RepackRequest
from lotkeeper.services.repack import save_repack

router = APIRouter()


@router.post("/bundle", response_model=RepackOut)
async def repack_bundle(
    body: RepackRequest,
    db: AsyncSession = Depends(get_db),
):
    result = await save_repack(body, settings.uploads_dir, db=db)
    return RepackOut.model_validate(result)
