"""ActivityLog: immutable audit trail for lot lifecycle actions.

Records who did what, when, and to which entity.  Rows are added to the
session of the operation being audited and commit (or roll back) with it.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lotkeeper.database import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    activity_log_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ── Who ────────────────────────────────────────────────────
    user_id: Mapped[int | None] = mapped_column(Integer, index=True)

    # ── What ───────────────────────────────────────────────────
    # confirmed | reported | resolved | weighed | crew_lot_no_updated |
    # repacked | reversed | scheduled | grn_created | grn_edited
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # ── Target ─────────────────────────────────────────────────
    # lot | inbound | bundle | job | schedule_outbound | outbound
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_id: Mapped[int | None] = mapped_column(Integer)
    entity_code: Mapped[str | None] = mapped_column(String(100))

    # ── Context ────────────────────────────────────────────────
    summary: Mapped[str | None] = mapped_column(Text)
    details: Mapped[dict | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False, index=True
    )
