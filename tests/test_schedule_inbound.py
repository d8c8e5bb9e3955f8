"""Inbound scheduling tests."""

from datetime import datetime

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.middleware.exceptions import DuplicateScheduleError
from lotkeeper.models.lot import LOT_PENDING, Lot
from lotkeeper.models.reference import Brand, Commodity, Shape
from lotkeeper.models.schedule import ScheduleInbound
from lotkeeper.schemas.inbound import ScheduleInboundRequest, ScheduleLotIn
from lotkeeper.services.confirm_inbound import confirm_lots
from lotkeeper.services.schedule_inbound import normalise_lot, schedule_inbound

NEW_JOB = "SINI-2024-0099"


def _lot(lot_no: int, **overrides) -> dict:
    fields = dict(
        lotNo=lot_no,
        commodity="ZINC",
        brand="Nyrstar",
        shape="ing",
        exLmeWarehouse="Henry Bath",
        inboundWarehouse="Port Klang",
        exWarehouseLocation="Block A",
        exWarehouseLot=f"NY-{lot_no:03d}",
        expectedBundleCount=3,
        netWeight=24.5,
    )
    fields.update(overrides)
    return fields


def _request(job_data_map: dict) -> ScheduleInboundRequest:
    return ScheduleInboundRequest.model_validate({
        "inboundDate": "2024-04-02T00:00:00",
        "jobDataMap": job_data_map,
    })


@pytest.mark.unit
class TestNormalise:

    def test_shape_and_commodity_spellings(self):
        assert normalise_lot(ScheduleLotIn(lot_no=1, shape="ING", commodity="lead"))["shape"] == "Ingot"
        assert normalise_lot(ScheduleLotIn(lot_no=1, shape="tbar"))["shape"] == "T-bar"
        assert normalise_lot(ScheduleLotIn(lot_no=1, commodity="lead"))["commodity"] == "Lead"
        assert normalise_lot(ScheduleLotIn(lot_no=1, commodity=" Copper "))["commodity"] == "Copper"
        assert normalise_lot(ScheduleLotIn(lot_no=1))["shape"] is None

    def test_empty_job_map_rejected(self):
        with pytest.raises(ValidationError):
            _request({})
        with pytest.raises(ValidationError):
            _request({NEW_JOB: {"lots": []}})


@pytest.mark.integration
@pytest.mark.asyncio
class TestScheduleInbound:

    async def test_creates_schedule_and_pending_lots(self, db_session: AsyncSession, seed):
        scheduled = await schedule_inbound(
            _request({NEW_JOB: {"lots": [_lot(1), _lot(2)]}}), seed.office.user_id, db=db_session
        )

        [job] = scheduled
        assert job.schedule.job_no == NEW_JOB
        assert job.schedule.user_id == seed.office.user_id
        assert job.schedule.inbound_date == datetime(2024, 4, 2)

        lots = (
            await db_session.execute(select(Lot).where(Lot.job_no == NEW_JOB).order_by(Lot.lot_no))
        ).scalars().all()
        assert [lot.lot_no for lot in lots] == [1, 2]
        assert all(lot.status == LOT_PENDING for lot in lots)
        assert all(lot.schedule_inbound_id == job.schedule.schedule_inbound_id for lot in lots)
        assert lots[0].shape == "Ingot"
        assert lots[0].commodity == "Zinc"
        assert lots[1].ex_warehouse_lot == "NY-002"
        assert lots[1].expected_bundle_count == 3

    async def test_new_reference_names_added_once(self, db_session: AsyncSession, seed):
        await schedule_inbound(
            _request({NEW_JOB: {"lots": [_lot(1), _lot(2, brand="nyrstar")]}}),
            seed.office.user_id,
            db=db_session,
        )

        assert await db_session.scalar(
            select(func.count()).select_from(Brand).where(func.lower(Brand.brand_name) == "nyrstar")
        ) == 1
        assert await db_session.scalar(
            select(func.count()).select_from(Commodity).where(Commodity.commodity_name == "Zinc")
        ) == 1
        # Already seeded as "Ingot"
        assert await db_session.scalar(select(func.count()).select_from(Shape)) == 2

    async def test_scheduled_lots_can_be_confirmed(self, db_session: AsyncSession, seed):
        [job] = await schedule_inbound(
            _request({NEW_JOB: {"lots": [_lot(1)]}}), seed.office.user_id, db=db_session
        )

        inserted = await confirm_lots([job.lots[0].lot_id], seed.crew.user_id, db=db_session)

        assert [i.lot_no for i in inserted] == [1]
        assert inserted[0].job_no == NEW_JOB
        assert inserted[0].user_id == seed.office.user_id

    async def test_lot_number_already_scheduled(self, db_session: AsyncSession, seed):
        request = _request({
            NEW_JOB: {"lots": [_lot(1)]},
            seed.job_no: {"lots": [_lot(3), _lot(4)]},
        })

        with pytest.raises(DuplicateScheduleError) as exc_info:
            await schedule_inbound(request, seed.office.user_id, db=db_session)

        assert exc_info.value.status_code == 409
        assert exc_info.value.error_code == "DUPLICATE_SCHEDULE"
        assert exc_info.value.details == {"jobNo": seed.job_no, "lotNos": [3]}
        assert await db_session.scalar(select(func.count()).select_from(ScheduleInbound)) == 1
        assert await db_session.scalar(select(func.count()).select_from(Lot)) == 3

    async def test_lot_number_repeated_in_request(self, db_session: AsyncSession, seed):
        with pytest.raises(DuplicateScheduleError) as exc_info:
            await schedule_inbound(
                _request({NEW_JOB: {"lots": [_lot(7), _lot(8), _lot(7)]}}),
                seed.office.user_id,
                db=db_session,
            )

        assert exc_info.value.details["lotNos"] == [7]
        assert await db_session.scalar(select(func.count()).select_from(Lot)) == 3
