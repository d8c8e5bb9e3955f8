"""Offline sync batch tests."""

import json

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.middleware.exceptions import SyncBatchError
from lotkeeper.models.inbound import Inbound, InboundBundle
from lotkeeper.models.lot import LOT_PENDING, LOT_RECEIVED, Lot
from lotkeeper.models.report import LotReport
from lotkeeper.schemas.sync import SyncJob
from lotkeeper.services.sync import (
    STATUS_FAILED,
    STATUS_OK,
    STATUS_SKIPPED,
    parse_payload,
    process_batch,
)


def job(job_id, action_type, payload, target_id=None) -> SyncJob:
    return SyncJob(id=job_id, action_type=action_type, payload=payload, target_id=target_id)


@pytest.mark.unit
class TestParsePayload:

    def test_json_text(self):
        assert parse_payload('{"lotIds": [1]}') == {"lotIds": [1]}

    def test_decoded_object(self):
        assert parse_payload({"jobNo": "X"}) == {"jobNo": "X"}

    def test_missing_payload(self):
        assert parse_payload(None) == {}

    @pytest.mark.parametrize("payload", ["{not json", "[1, 2]", [1, 2], "42"])
    def test_rejects_non_objects(self, payload):
        with pytest.raises(ValueError):
            parse_payload(payload)


@pytest.mark.integration
@pytest.mark.asyncio
class TestProcessBatch:

    async def test_bad_payload_fails_and_batch_continues(
        self, db_session: AsyncSession, seed, fake_renderer, tmp_path
    ):
        lot_id = seed.lots[0].lot_id
        results = await process_batch(
            [
                job(1, "CONFIRM_INBOUND", "{not json"),
                job(2, "TELEPORT_LOT", "{}"),
                job(3, "CONFIRM_INBOUND", json.dumps({"selectedLots": [{"lotId": lot_id}]})),
            ],
            seed.crew.user_id, fake_renderer, str(tmp_path), db=db_session,
        )

        assert [(r.job_id, r.status) for r in results] == [
            (1, STATUS_FAILED), (2, STATUS_SKIPPED), (3, STATUS_OK),
        ]
        assert results[0].error
        assert results[2].processed == 1
        inbound = await db_session.scalar(select(Inbound))
        assert inbound.processed_id == seed.crew.user_id

    async def test_field_workflow_in_one_batch(self, db_session: AsyncSession, seed, fake_renderer, tmp_path):
        lots = seed.lots
        results = await process_batch(
            [
                job("a", "CONFIRM_INBOUND", {"selectedLots": [lots[0].lot_id, {"lotId": lots[1].lot_id}]}),
                job("b", "UPDATE_CREW_LOT_NO", {
                    "isInbound": True, "jobNo": seed.job_no, "exWarehouseLot": "EWL-001", "crewLotNo": 51,
                }),
                job("c", "SAVE_ACTUAL_WEIGHT", {
                    "isInbound": True, "jobNo": seed.job_no, "exWarehouseLot": "EWL-001",
                    "actualWeight": 24000,
                    "bundles": [{"bundleNo": 1, "weight": 12000}, {"bundleNo": 2, "weight": 12000}],
                }),
                job("d", "SAVE_ACTUAL_WEIGHT", {
                    "isInbound": False, "jobNo": seed.job_no, "lotNo": 3, "actualWeight": 500,
                    "bundles": [{"bundleNo": 1, "weight": 500}],
                }),
                job("e", "REPORT_DISCREPANCY", {"lotIds": [lots[2].lot_id]}),
                job("f", "REPORT_JOB_DISCREPANCY", {"jobNo": seed.job_no, "discrepancyType": "extra"}),
            ],
            seed.crew.user_id, fake_renderer, str(tmp_path), db=db_session,
        )

        assert [r.status for r in results] == [STATUS_OK] * 6
        assert results[0].processed == 2
        assert results[2].processed == 2
        # lot 3 was already flagged by job "e"
        assert results[5].processed == 2

        inbound = await db_session.scalar(select(Inbound).where(Inbound.ex_warehouse_lot == "EWL-001"))
        assert inbound.lot_no == 51
        assert inbound.actual_weight == pytest.approx(24.0)
        assert inbound.is_weighted is True

        lot3 = await db_session.get(Lot, lots[2].lot_id)
        await db_session.refresh(lot3)
        assert lot3.status == LOT_PENDING
        assert lot3.actual_weight == pytest.approx(0.5)
        assert lot3.report is True

        report = await db_session.scalar(select(LotReport))
        assert report.reported_by == seed.crew.user_id

    async def test_failing_job_rolls_back_whole_batch(
        self, db_session: AsyncSession, session_factory, seed, fake_renderer, tmp_path
    ):
        lot_id = seed.lots[0].lot_id

        with pytest.raises(SyncBatchError) as exc_info:
            await process_batch(
                [
                    job(1, "CONFIRM_INBOUND", {"selectedLots": [lot_id]}),
                    job(2, "SAVE_ACTUAL_WEIGHT", {"id": 99999, "isInbound": False, "actualWeight": 10}),
                    job(3, "REPORT_DISCREPANCY", {"lotIds": [lot_id]}),
                ],
                seed.crew.user_id, fake_renderer, str(tmp_path),
            )

        assert exc_info.value.job_id == 2
        assert exc_info.value.details == {"failedJobId": 2}
        async with session_factory() as fresh:
            assert await fresh.scalar(select(func.count()).select_from(Inbound)) == 0
            assert await fresh.scalar(select(func.count()).select_from(LotReport)) == 0
            lot = await fresh.get(Lot, lot_id)
            assert lot.status == LOT_PENDING

    async def test_successful_batch_commits(
        self, db_session: AsyncSession, session_factory, seed, fake_renderer, tmp_path
    ):
        lot_id = seed.lots[1].lot_id
        await process_batch(
            [
                job(1, "SAVE_ACTUAL_WEIGHT", {
                    "id": lot_id, "isInbound": False, "actualWeight": 2000,
                    "bundles": [{"bundleNo": 1, "weight": 2000}],
                }),
                job(2, "CONFIRM_INBOUND", {"selectedLots": [{"lotId": lot_id}]}),
            ],
            seed.crew.user_id, fake_renderer, str(tmp_path),
        )

        async with session_factory() as fresh:
            lot = await fresh.get(Lot, lot_id)
            assert lot.status == LOT_RECEIVED
            inbound = await fresh.scalar(select(Inbound))
            assert inbound.is_weighted is True
            bundle = await fresh.scalar(select(InboundBundle))
            assert bundle.inbound_id == inbound.inbound_id

    async def test_update_grn_needs_numeric_target(self, db_session: AsyncSession, seed, fake_renderer, tmp_path):
        with pytest.raises(SyncBatchError) as exc_info:
            await process_batch(
                [job(7, "UPDATE_GRN", {"uom": "KG"}, target_id="abc")],
                seed.crew.user_id, fake_renderer, str(tmp_path), db=db_session,
            )
        assert "outboundId" in exc_info.value.message
