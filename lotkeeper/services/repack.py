"""Bundle repack recording.

A repack save upserts one bundle (by id, or by inbound + bundle number),
replaces its piece list, and manages its before/after photos:

  - ``is_repack_provided``       → submitted photos replace those of the same tag
  - not ``is_repack_provided``   → every photo row of the bundle is removed
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.database import transaction_scope
from lotkeeper.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from lotkeeper.models.inbound import BundlePhoto, BundlePiece, Inbound, InboundBundle
from lotkeeper.models.lot import Lot
from lotkeeper.schemas.weighing import RepackRequest
from lotkeeper.services.photos import save_base64_photo
from lotkeeper.utils.activity import log_activity

logger = logging.getLogger(__name__)

PHOTO_BEFORE = "before"
PHOTO_AFTER = "after"


@dataclass
class RepackResult:
    inbound_bundle_id: int
    action: str
    pieces: int
    photos: list[str] = field(default_factory=list)


async def _load_or_create_bundle(
    db: AsyncSession, data: RepackRequest
) -> tuple[InboundBundle, str]:
    if data.inbound_bundle_id:
        bundle = await db.get(InboundBundle, data.inbound_bundle_id)
        if bundle is None:
            raise ResourceNotFoundError("Bundle", data.inbound_bundle_id)
        return bundle, "updated"

    if not data.inbound_id or not data.bundle_no:
        raise BusinessLogicError("inboundId and bundleNo are required to create a bundle")

    inbound = await db.get(Inbound, data.inbound_id)
    if inbound is None:
        raise ResourceNotFoundError("Inbound", data.inbound_id)

    bundle = (
        await db.execute(
            select(InboundBundle).where(
                InboundBundle.inbound_id == data.inbound_id,
                InboundBundle.bundle_no == data.bundle_no,
            )
        )
    ).scalar_one_or_none()
    if bundle is not None:
        return bundle, "updated"

    weight = data.weight
    if weight is None and inbound.net_weight and inbound.no_of_bundle:
        weight = inbound.net_weight / inbound.no_of_bundle
    bundle = InboundBundle(
        inbound_id=data.inbound_id,
        bundle_no=data.bundle_no,
        weight=weight,
        is_outbounded=False,
    )
    db.add(bundle)
    await db.flush()
    return bundle, "created"


async def _owner_numbers(db: AsyncSession, bundle: InboundBundle) -> tuple[str, int]:
    if bundle.inbound_id is not None:
        owner = await db.get(Inbound, bundle.inbound_id)
    else:
        owner = await db.get(Lot, bundle.lot_id)
    return owner.job_no, owner.lot_no


async def save_repack(
    bundle_data: RepackRequest,
    uploads_dir: str,
    user_id: int | None = None,
    db: AsyncSession | None = None,
) -> RepackResult:
    """Upsert a repacked bundle with its pieces and photos."""
    async with transaction_scope(db) as session:
        bundle, action = await _load_or_create_bundle(session, bundle_data)

        bundle.is_relabelled = bundle_data.is_relabelled
        bundle.is_rebundled = bundle_data.is_rebundled
        bundle.is_repack_provided = bundle_data.is_repack_provided
        bundle.no_of_metal_strap = bundle_data.no_of_metal_strap
        bundle.repack_description = bundle_data.repack_description
        if bundle_data.melt_no is not None:
            bundle.melt_no = bundle_data.melt_no

        # ── Piece list (full replace) ────────────────────────
        await session.execute(
            delete(BundlePiece).where(BundlePiece.inbound_bundle_id == bundle.inbound_bundle_id)
        )
        for piece in bundle_data.pieces:
            session.add(BundlePiece(
                inbound_bundle_id=bundle.inbound_bundle_id,
                piece_type=piece.piece_type,
                quantity=piece.quantity,
            ))

        # ── Photos ───────────────────────────────────────────
        saved_paths: list[str] = []
        if not bundle_data.is_repack_provided:
            await session.execute(
                delete(BundlePhoto).where(BundlePhoto.inbound_bundle_id == bundle.inbound_bundle_id)
            )
        else:
            job_no, lot_no = await _owner_numbers(session, bundle)
            for tag, images in (
                (PHOTO_BEFORE, bundle_data.before_images),
                (PHOTO_AFTER, bundle_data.after_images),
            ):
                if not images:
                    continue
                await session.execute(
                    delete(BundlePhoto).where(
                        BundlePhoto.inbound_bundle_id == bundle.inbound_bundle_id,
                        BundlePhoto.tag == tag,
                    )
                )
                for image in images:
                    path = save_base64_photo(
                        image, job_no, lot_no, bundle.bundle_no, tag, uploads_dir
                    )
                    session.add(BundlePhoto(
                        inbound_bundle_id=bundle.inbound_bundle_id,
                        tag=tag,
                        image_path=path,
                    ))
                    saved_paths.append(path)

        await log_activity(
            session, user_id,
            action="repacked",
            entity_type="bundle",
            entity_id=bundle.inbound_bundle_id,
            summary=f"Bundle {bundle.bundle_no} {action} with {len(bundle_data.pieces)} piece lines",
            details={"photos": saved_paths},
        )
        await session.flush()
        logger.info("Repack %s for bundle %s", action, bundle.inbound_bundle_id)
        return RepackResult(
            inbound_bundle_id=bundle.inbound_bundle_id,
            action=action,
            pieces=len(bundle_data.pieces),
            photos=saved_paths,
        )
