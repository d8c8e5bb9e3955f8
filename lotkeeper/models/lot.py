"""Lot: a scheduled shipment unit awaiting (or past) inbound confirmation.

A Lot is created when an office user schedules a job (Excel import or
manual entry).  Reference data is carried as display names; confirmation
resolves them to foreign keys on the Inbound record.

Lifecycle:  Pending → Received
Flags:      report (open discrepancy), reportDuplicate (open duplicate
            report), isDuplicated (duplicate accepted)
"""

from datetime import datetime

from sqlalchemy import (
    Boolean, DateTime, Float, ForeignKey,
    Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lotkeeper.database import Base

LOT_PENDING = "Pending"
LOT_RECEIVED = "Received"


class Lot(Base):
    __tablename__ = "lot"
    __table_args__ = (UniqueConstraint("job_no", "lot_no", name="uq_lot_job_lot"),)

    lot_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    lot_no: Mapped[int] = mapped_column(Integer, nullable=False)
    schedule_inbound_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("scheduleinbounds.schedule_inbound_id"), index=True
    )

    # ── Reference names (resolved at confirmation) ────────────
    commodity: Mapped[str | None] = mapped_column(String(100))
    brand: Mapped[str | None] = mapped_column(String(100))
    shape: Mapped[str | None] = mapped_column(String(100))
    ex_lme_warehouse: Mapped[str | None] = mapped_column(String(150))
    inbound_warehouse: Mapped[str | None] = mapped_column(String(150))
    ex_warehouse_location: Mapped[str | None] = mapped_column(String(150))

    # ── Warehouse identifiers ────────────────────────────────
    ex_warehouse_lot: Mapped[str | None] = mapped_column(String(50), index=True)
    ex_warehouse_warrant: Mapped[str | None] = mapped_column(String(50))
    crew_lot_no: Mapped[int | None] = mapped_column(Integer)

    # ── Quantities (weights in metric tons) ──────────────────
    expected_bundle_count: Mapped[int] = mapped_column(Integer, default=0)
    net_weight: Mapped[float | None] = mapped_column(Float)
    gross_weight: Mapped[float | None] = mapped_column(Float)
    actual_weight: Mapped[float | None] = mapped_column(Float)
    sticker_weight: Mapped[float | None] = mapped_column(Float)

    # ── Status ───────────────────────────────────────────────
    status: Mapped[str] = mapped_column(String(20), default=LOT_PENDING, index=True)
    is_confirm: Mapped[bool] = mapped_column(Boolean, default=False)
    is_weighted: Mapped[bool] = mapped_column(Boolean, default=False)
    report: Mapped[bool] = mapped_column(Boolean, default=False)
    report_duplicate: Mapped[bool] = mapped_column(Boolean, default=False)
    is_duplicated: Mapped[bool] = mapped_column(Boolean, default=False)

    inbound_date: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    schedule_inbound = relationship("ScheduleInbound", back_populates="lots")
