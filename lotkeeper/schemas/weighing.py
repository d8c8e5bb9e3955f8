"""Pydantic schemas for weighing, crew lot numbers and repack."""

from pydantic import Field

from lotkeeper.schemas.common import CamelModel


# ── Weighing ─────────────────────────────────────────────────

class BundleIn(CamelModel):
    bundle_no: int = Field(..., ge=1)
    weight: float | None = Field(None, ge=0)
    melt_no: str | None = Field(None, max_length=100)
    sticker_weight: float | None = Field(None, ge=0)


class SaveWeighingRequest(CamelModel):
    """Payload for POST /actual-weight/save.

    ``actual_weight`` and bundle weights are in kilograms.  When ``id`` is
    missing the target is found from ``ex_warehouse_lot`` and then from
    ``job_no`` / ``lot_no``.
    """
    id: int | None = None
    is_inbound: bool = True
    actual_weight: float = Field(..., ge=0)
    bundles: list[BundleIn] = Field(default_factory=list)
    job_no: str | None = None
    lot_no: int | None = None
    ex_warehouse_lot: str | None = None


class BundleOut(CamelModel):
    inbound_bundle_id: int
    inbound_id: int | None = None
    lot_id: int | None = None
    bundle_no: int
    weight: float | None = None
    melt_no: str | None = None
    sticker_weight: float | None = None


class WeighingOut(CamelModel):
    target_id: int
    is_inbound: bool
    counterpart_id: int | None = None
    actual_weight: float
    sticker_weight: float
    is_weighted: bool
    bundles: list[BundleOut]


# ── Crew lot number ──────────────────────────────────────────

class CrewLotNoRequest(CamelModel):
    id: int | None = None
    is_inbound: bool = True
    crew_lot_no: int = Field(..., ge=1)
    job_no: str | None = None
    ex_warehouse_lot: str | None = None


class CrewLotNoOut(CamelModel):
    job_no: str
    ex_warehouse_lot: str | None = None
    crew_lot_no: int
    inbounds_updated: int
    lots_updated: int


# ── Repack ───────────────────────────────────────────────────

class PieceIn(CamelModel):
    piece_type: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., ge=1)


class RepackRequest(CamelModel):
    """Payload for POST /repack/bundle.

    Identify the bundle by ``inbound_bundle_id``, or by ``inbound_id`` +
    ``bundle_no`` to create it.  Photos are base64 strings, optionally
    data-URI prefixed.
    """
    inbound_bundle_id: int | None = None
    inbound_id: int | None = None
    bundle_no: int | None = Field(None, ge=1)
    weight: float | None = Field(None, ge=0)
    melt_no: str | None = Field(None, max_length=100)
    is_relabelled: bool = False
    is_rebundled: bool = False
    is_repack_provided: bool = False
    no_of_metal_strap: int | None = Field(None, ge=0)
    repack_description: str | None = None
    pieces: list[PieceIn] = Field(default_factory=list)
    before_images: list[str] = Field(default_factory=list)
    after_images: list[str] = Field(default_factory=list)


class RepackOut(CamelModel):
    inbound_bundle_id: int
    action: str
    pieces: int
    photos: list[str]
