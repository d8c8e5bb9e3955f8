"""GRN number generation.

A GRN number is the job's outbound reference followed by a per-job
sequence:

    SINI-2024-0042  →  SINO-2024-0042/1, SINO-2024-0042/2, ...

The prefix swap is configured through ``settings.inbound_job_prefix`` and
``settings.outbound_job_prefix``.  The sequence continues from the highest
number already issued for the job, so a hand-entered ``/5`` is followed
by ``/6``.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.config import settings
from lotkeeper.models.outbound import Outbound


def outbound_reference(job_no: str) -> str:
    """Map an inbound job number to its outbound reference."""
    return job_no.replace(settings.inbound_job_prefix, settings.outbound_job_prefix)


def _sequence(grn_no: str) -> int:
    _, _, suffix = grn_no.rpartition("/")
    return int(suffix) if suffix.isdigit() else 0


async def next_grn_number(db: AsyncSession, job_no: str) -> str:
    """Return the next GRN number for *job_no* (not reserved)."""
    result = await db.execute(select(Outbound.grn_no).where(Outbound.job_identifier == job_no))
    highest = max((_sequence(grn_no) for grn_no in result.scalars() if grn_no), default=0)
    return f"{outbound_reference(job_no)}/{highest + 1}"
