"""Sync router: replay the mobile client's offline queue.

Endpoints:
    POST /sync   Process a batch of queued jobs in one transaction
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.auth.deps import get_current_user
from lotkeeper.config import settings
from lotkeeper.database import get_db
from lotkeeper.models.user import User
from lotkeeper.schemas.sync import SyncRequest, SyncResponse
from lotkeeper.services.grn_document import GrnRenderer, get_grn_renderer
from lotkeeper.services.sync import process_batch

router = APIRouter()


@router.post("", response_model=SyncResponse)
async def sync(
    body: SyncRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
    renderer: GrnRenderer = Depends(get_grn_renderer),
):
    """All-or-nothing: a failing job rolls back the whole batch (HTTP 500)."""
    results = await process_batch(body.jobs, user.user_id, renderer, settings.uploads_dir, db=db)
    return SyncResponse(message="Sync successful", results=results)
