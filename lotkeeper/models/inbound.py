"""Inbound: the canonical received-cargo record, and its bundles.

An Inbound row is created exactly once per (job_no, lot_no) when a
Pending Lot is confirmed, and keeps a link to that lot in ``lot_id``.
``user_id`` is the office user who scheduled the lot; ``processed_id`` is
the crew/supervisor who confirmed it.

InboundBundle rows are the individually weighed sub-units.  A bundle
belongs to either a Lot (weighed before confirmation) or an Inbound,
never both and never neither; the check constraint enforces it.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, Float, ForeignKey,
    Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lotkeeper.database import Base


class Inbound(Base):
    __tablename__ = "inbounds"
    __table_args__ = (UniqueConstraint("job_no", "lot_no", name="uq_inbound_job_lot"),)

    inbound_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_no: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    lot_no: Mapped[int] = mapped_column(Integer, nullable=False)
    barcode_no: Mapped[str | None] = mapped_column(String(50))
    # Source lot; stays put when a crew lot number renumbers the inbound
    lot_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("lot.lot_id"), index=True)

    # ── Resolved references ──────────────────────────────────
    commodity_id: Mapped[int] = mapped_column(Integer, ForeignKey("commodities.commodity_id"))
    shape_id: Mapped[int] = mapped_column(Integer, ForeignKey("shapes.shape_id"))
    brand_id: Mapped[int] = mapped_column(Integer, ForeignKey("brands.brand_id"))
    ex_lme_warehouse_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exlmewarehouses.ex_lme_warehouse_id")
    )
    inbound_warehouse_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inboundwarehouses.inbound_warehouse_id")
    )
    ex_warehouse_location_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("exwarehouselocations.ex_warehouse_location_id")
    )

    # ── Warehouse identifiers ────────────────────────────────
    ex_warehouse_lot: Mapped[str | None] = mapped_column(String(50), index=True)
    ex_warehouse_warrant: Mapped[str | None] = mapped_column(String(50))
    crew_lot_no: Mapped[int | None] = mapped_column(Integer)

    # ── Quantities (weights in metric tons) ──────────────────
    no_of_bundle: Mapped[int] = mapped_column(Integer, default=0)
    gross_weight: Mapped[float | None] = mapped_column(Float)
    net_weight: Mapped[float | None] = mapped_column(Float)
    actual_weight: Mapped[float | None] = mapped_column(Float)
    sticker_weight: Mapped[float | None] = mapped_column(Float)
    is_weighted: Mapped[bool] = mapped_column(Boolean, default=False)

    # ── People ───────────────────────────────────────────────
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.user_id"), nullable=False)
    processed_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.user_id"), nullable=False)

    inbound_date: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    schedule_inbound_date: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    commodity = relationship("Commodity")
    shape = relationship("Shape")
    brand = relationship("Brand")
    ex_lme_warehouse = relationship("ExLmeWarehouse")


class InboundBundle(Base):
    __tablename__ = "inboundbundles"
    __table_args__ = (
        CheckConstraint(
            "(inbound_id IS NULL) <> (lot_id IS NULL)",
            name="ck_bundle_single_parent",
        ),
        UniqueConstraint("inbound_id", "bundle_no", name="uq_bundle_inbound_no"),
        UniqueConstraint("lot_id", "bundle_no", name="uq_bundle_lot_no"),
    )

    inbound_bundle_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inbound_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("inbounds.inbound_id", ondelete="CASCADE"), index=True
    )
    lot_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("lot.lot_id", ondelete="CASCADE"), index=True
    )
    bundle_no: Mapped[int] = mapped_column(Integer, nullable=False)

    # ── Weighing ─────────────────────────────────────────────
    weight: Mapped[float | None] = mapped_column(Float)
    sticker_weight: Mapped[float | None] = mapped_column(Float)
    melt_no: Mapped[str | None] = mapped_column(String(100))
    is_outbounded: Mapped[bool] = mapped_column(Boolean, default=False)

    # ── Repack ───────────────────────────────────────────────
    is_relabelled: Mapped[bool] = mapped_column(Boolean, default=False)
    is_rebundled: Mapped[bool] = mapped_column(Boolean, default=False)
    is_repack_provided: Mapped[bool] = mapped_column(Boolean, default=False)
    no_of_metal_strap: Mapped[int | None] = mapped_column(Integer)
    repack_description: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    pieces = relationship("BundlePiece", cascade="all, delete-orphan")
    photos = relationship("BundlePhoto", cascade="all, delete-orphan")


class BundlePiece(Base):
    """One line of a repacked bundle's piece list (e.g. 12 × "plate")."""

    __tablename__ = "bundle_pieces"

    bundle_piece_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inbound_bundle_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inboundbundles.inbound_bundle_id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    piece_type: Mapped[str] = mapped_column(String(100), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)


class BundlePhoto(Base):
    """A before/after repack photo stored under the uploads directory."""

    __tablename__ = "bundle_photos"

    bundle_photo_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    inbound_bundle_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("inboundbundles.inbound_bundle_id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    # before | after
    tag: Mapped[str] = mapped_column(String(10), nullable=False)
    image_path: Mapped[str] = mapped_column(String(500), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
