"""Shared bundle housekeeping."""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.models.inbound import BundlePhoto, BundlePiece, InboundBundle


async def delete_bundles(db: AsyncSession, *criteria) -> int:
    """Delete the bundles matching *criteria* along with their pieces and photos.

    Returns the number of bundles removed.
    """
    bundle_ids = (
        await db.execute(select(InboundBundle.inbound_bundle_id).where(*criteria))
    ).scalars().all()
    if not bundle_ids:
        return 0

    await db.execute(delete(BundlePiece).where(BundlePiece.inbound_bundle_id.in_(bundle_ids)))
    await db.execute(delete(BundlePhoto).where(BundlePhoto.inbound_bundle_id.in_(bundle_ids)))
    await db.execute(
        delete(InboundBundle)
        .where(InboundBundle.inbound_bundle_id.in_(bundle_ids))
        .execution_options(synchronize_session="fetch")
    )
    return len(bundle_ids)
