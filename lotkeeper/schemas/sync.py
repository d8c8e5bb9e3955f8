"""Pydantic schemas for the offline sync batch endpoint."""

from typing import Any

from pydantic import Field

from lotkeeper.schemas.common import CamelModel


class SyncJob(CamelModel):
    """One queued client action.

    ``payload`` is usually a JSON string (as stored in the client's queue)
    but an already-decoded object is accepted too.
    """
    id: int | str
    action_type: str
    payload: Any = None
    target_id: int | str | None = None


class SyncRequest(CamelModel):
    jobs: list[SyncJob] = Field(..., min_length=1)


class SyncResult(CamelModel):
    job_id: int | str
    status: str
    processed: int | None = None
    error: str | None = None


class SyncResponse(CamelModel):
    message: str
    results: list[SyncResult]
