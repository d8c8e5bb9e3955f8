"""Actual-weight capture tests."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from lotkeeper.models.inbound import InboundBundle
from lotkeeper.schemas.weighing import BundleIn
from lotkeeper.services.weighing import (
    find_counterpart,
    resolve_target_id,
    save_weighing,
    total_sticker_weight,
)


async def _bundles(db: AsyncSession) -> list[InboundBundle]:
    result = await db.execute(select(InboundBundle).order_by(InboundBundle.bundle_no))
    return result.scalars().all()


@pytest.mark.unit
class TestStickerWeight:

    def test_sums_positive_weights_in_tons(self):
        bundles = [
            BundleIn(bundle_no=1, sticker_weight=500),
            BundleIn(bundle_no=2, sticker_weight=None),
            BundleIn(bundle_no=3, sticker_weight=0),
            BundleIn(bundle_no=4, sticker_weight=250),
        ]
        assert total_sticker_weight(bundles) == pytest.approx(0.75)

    def test_empty(self):
        assert total_sticker_weight([]) == 0


@pytest.mark.integration
@pytest.mark.asyncio
class TestSaveWeighing:

    async def test_kilograms_stored_as_tons(self, db_session: AsyncSession, seed):
        lot = seed.lots[0]
        result = await save_weighing(
            lot.lot_id, False, 5, [BundleIn(bundle_no=1, weight=5)], db=db_session
        )

        assert lot.actual_weight == pytest.approx(0.005)
        assert lot.is_weighted is True
        assert result.actual_weight == 5
        assert result.counterpart_id is None

        await save_weighing(lot.lot_id, False, 1000, [BundleIn(bundle_no=1, weight=1000)], db=db_session)
        assert lot.actual_weight == pytest.approx(1.0)

    async def test_lot_owns_bundles_before_confirmation(self, db_session: AsyncSession, seed):
        lot = seed.lots[0]
        await save_weighing(
            lot.lot_id, False, 25000,
            [BundleIn(bundle_no=1, weight=12500, melt_no="M-1"), BundleIn(bundle_no=2, weight=12500)],
            db=db_session,
        )

        bundles = await _bundles(db_session)
        assert [b.lot_id for b in bundles] == [lot.lot_id, lot.lot_id]
        assert all(b.inbound_id is None for b in bundles)
        assert bundles[0].melt_no == "M-1"

    async def test_save_replaces_previous_bundles(self, db_session: AsyncSession, seed):
        lot = seed.lots[0]
        await save_weighing(
            lot.lot_id, False, 2000,
            [BundleIn(bundle_no=1, weight=1000), BundleIn(bundle_no=2, weight=1000)],
            db=db_session,
        )
        await save_weighing(lot.lot_id, False, 999, [BundleIn(bundle_no=1, weight=999)], db=db_session)

        bundles = await _bundles(db_session)
        assert len(bundles) == 1
        assert bundles[0].weight == 999
        assert lot.actual_weight == pytest.approx(0.999)

    async def test_inbound_and_counterpart_stay_in_step(
        self, db_session: AsyncSession, seed, confirmed_inbounds
    ):
        inbound = confirmed_inbounds[0]
        lot = seed.lots[0]

        result = await save_weighing(
            inbound.inbound_id, True, 2500,
            [BundleIn(bundle_no=1, weight=1250, sticker_weight=1200),
             BundleIn(bundle_no=2, weight=1250, sticker_weight=1300)],
            db=db_session,
        )

        assert result.counterpart_id == lot.lot_id
        for record in (inbound, lot):
            assert record.actual_weight == pytest.approx(2.5)
            assert record.sticker_weight == pytest.approx(2.5)
            assert record.is_weighted is True

        bundles = await _bundles(db_session)
        assert {b.inbound_id for b in bundles} == {inbound.inbound_id}
        assert all(b.lot_id is None for b in bundles)

    async def test_weighing_lot_after_confirmation_targets_inbound_bundles(
        self, db_session: AsyncSession, seed, confirmed_inbounds
    ):
        inbound = confirmed_inbounds[1]
        lot = seed.lots[1]

        await save_weighing(lot.lot_id, False, 3000, [BundleIn(bundle_no=1, weight=3000)], db=db_session)

        [bundle] = await _bundles(db_session)
        assert bundle.inbound_id == inbound.inbound_id
        assert inbound.actual_weight == pytest.approx(3.0)

    async def test_duplicate_bundle_numbers_rejected(self, db_session: AsyncSession, seed):
        with pytest.raises(BusinessLogicError):
            await save_weighing(
                seed.lots[0].lot_id, False, 10,
                [BundleIn(bundle_no=1, weight=5), BundleIn(bundle_no=1, weight=5)],
                db=db_session,
            )

    async def test_missing_target(self, db_session: AsyncSession, seed):
        with pytest.raises(ResourceNotFoundError):
            await save_weighing(99999, True, 10, [], db=db_session)

    async def test_bundle_needs_exactly_one_owner(self, db_session: AsyncSession, seed, confirmed_inbounds):
        inbound_id = confirmed_inbounds[0].inbound_id
        lot_id = seed.lots[2].lot_id

        db_session.add(InboundBundle(bundle_no=9, weight=1.0))
        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()

        db_session.add(InboundBundle(bundle_no=9, weight=1.0, inbound_id=inbound_id, lot_id=lot_id))
        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()


@pytest.mark.integration
@pytest.mark.asyncio
class TestTargetResolution:

    async def test_explicit_id_wins(self, db_session: AsyncSession, seed):
        assert await resolve_target_id(db_session, False, 77, ex_warehouse_lot="EWL-001") == 77

    async def test_by_ex_warehouse_lot(self, db_session: AsyncSession, seed):
        found = await resolve_target_id(db_session, False, job_no=seed.job_no, ex_warehouse_lot="EWL-002")
        assert found == seed.lots[1].lot_id

    async def test_falls_back_to_job_and_lot_no(self, db_session: AsyncSession, seed, confirmed_inbounds):
        found = await resolve_target_id(
            db_session, True, job_no=seed.job_no, lot_no=2, ex_warehouse_lot="NOPE"
        )
        assert found == confirmed_inbounds[1].inbound_id

    async def test_nothing_matches(self, db_session: AsyncSession, seed):
        assert await resolve_target_id(db_session, True, job_no=seed.job_no, lot_no=1) is None

    async def test_counterpart_by_ex_warehouse_lot_after_renumbering(
        self, db_session: AsyncSession, seed, confirmed_inbounds
    ):
        inbound = confirmed_inbounds[0]
        inbound.lot_no = 101
        inbound.lot_id = None
        await db_session.flush()

        assert await find_counterpart(db_session, inbound, True) is seed.lots[0]

    async def test_unlinked_inbound_pairs_by_number(self, db_session: AsyncSession, seed, confirmed_inbounds):
        inbound = confirmed_inbounds[1]
        inbound.lot_id = None
        await db_session.flush()

        assert await find_counterpart(db_session, inbound, True) is seed.lots[1]
        # a lot never pairs with an inbound linked to a different lot
        assert await find_counterpart(db_session, seed.lots[0], False) is confirmed_inbounds[0]
        assert await find_counterpart(db_session, seed.lots[2], False) is None
