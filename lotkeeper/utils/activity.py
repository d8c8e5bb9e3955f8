"""Audit trail helper.

Every lifecycle change (confirm, reverse, weigh, renumber, repack, GRN)
leaves one ``activity_logs`` row.  The row rides on the caller's session,
so it is committed or rolled back together with the change it describes.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.models.activity_log import ActivityLog


async def log_activity(
    db: AsyncSession,
    user_id: int | None,
    *,
    action: str,
    entity_type: str,
    entity_id: int | None = None,
    entity_code: str | None = None,
    summary: str | None = None,
    details: dict | None = None,
) -> ActivityLog:
    """Stage an audit row; the enclosing transaction decides its fate."""
    row = ActivityLog(user_id=user_id, action=action, entity_type=entity_type)
    row.entity_id = entity_id
    row.entity_code = entity_code
    row.summary = summary or f"{entity_type} {action}"
    row.details = details
    db.add(row)
    return row
