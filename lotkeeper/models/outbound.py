"""Outbound (GRN header) and OutboundTransaction (one row per released lot).

An Outbound is written once per confirmed release; its GRN number is
``<outbound reference>/<n>`` where n counts GRNs already issued for the
job.  OutboundTransaction rows snapshot the inbound and schedule data at
release time so later edits to the inbound never change a finalised GRN.
"""

from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lotkeeper.database import Base


class Outbound(Base):
    __tablename__ = "outbounds"

    outbound_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    grn_no: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    job_identifier: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    release_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # ── Release crew ─────────────────────────────────────────
    driver_name: Mapped[str | None] = mapped_column(String(150))
    driver_identity_no: Mapped[str | None] = mapped_column(String(50))
    truck_plate_no: Mapped[str | None] = mapped_column(String(30))
    warehouse_staff: Mapped[str | None] = mapped_column(String(150))
    warehouse_supervisor: Mapped[str | None] = mapped_column(String(150))
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.user_id"), nullable=False)

    # ── Signatures (PNG bytes) ───────────────────────────────
    driver_signature: Mapped[bytes | None] = mapped_column(LargeBinary)
    warehouse_staff_signature: Mapped[bytes | None] = mapped_column(LargeBinary)
    warehouse_supervisor_signature: Mapped[bytes | None] = mapped_column(LargeBinary)

    # ── Rendered document ────────────────────────────────────
    grn_image: Mapped[str | None] = mapped_column(String(500))
    grn_preview_image: Mapped[str | None] = mapped_column(String(500))
    file_size: Mapped[int | None] = mapped_column(Integer)
    uom: Mapped[str | None] = mapped_column(String(10))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    transactions = relationship("OutboundTransaction", back_populates="outbound")


class OutboundTransaction(Base):
    __tablename__ = "outboundtransactions"

    outbound_transaction_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    outbound_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("outbounds.outbound_id"), nullable=False, index=True
    )
    inbound_id: Mapped[int] = mapped_column(Integer, ForeignKey("inbounds.inbound_id"), nullable=False)
    schedule_outbound_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scheduleoutbounds.schedule_outbound_id"), nullable=False
    )

    # ── Lot snapshot ─────────────────────────────────────────
    job_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    lot_no: Mapped[int] = mapped_column(Integer, nullable=False)
    commodity: Mapped[str | None] = mapped_column(String(100))
    brand: Mapped[str | None] = mapped_column(String(100))
    shape: Mapped[str | None] = mapped_column(String(100))
    ex_lme_warehouse: Mapped[str | None] = mapped_column(String(150))
    ex_warehouse_lot: Mapped[str | None] = mapped_column(String(50))
    ex_warehouse_warrant: Mapped[str | None] = mapped_column(String(50))
    no_of_bundle: Mapped[int] = mapped_column(Integer, default=0)
    gross_weight: Mapped[float | None] = mapped_column(Float)
    net_weight: Mapped[float | None] = mapped_column(Float)
    actual_weight: Mapped[float | None] = mapped_column(Float)

    # ── Schedule snapshot ────────────────────────────────────
    release_date: Mapped[datetime | None] = mapped_column(DateTime)
    release_warehouse: Mapped[str | None] = mapped_column(String(150))
    storage_release_location: Mapped[str | None] = mapped_column(String(150))
    transport_vendor: Mapped[str | None] = mapped_column(String(150))
    lot_release_weight: Mapped[float | None] = mapped_column(Float)
    outbound_type: Mapped[str | None] = mapped_column(String(30))
    export_date: Mapped[datetime | None] = mapped_column(DateTime)
    stuffing_date: Mapped[datetime | None] = mapped_column(DateTime)
    container_no: Mapped[str | None] = mapped_column(String(50))
    seal_no: Mapped[str | None] = mapped_column(String(50))

    outbounded_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.user_id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    outbound = relationship("Outbound", back_populates="transactions")
