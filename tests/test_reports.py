"""Discrepancy and duplicate report tests."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.middleware.exceptions import BusinessLogicError
from lotkeeper.models.lot import LOT_RECEIVED
from lotkeeper.models.report import (
    REPORT_ACCEPTED,
    REPORT_DECLINED,
    REPORT_PENDING,
    JobReport,
    LotReport,
)
from lotkeeper.services.confirm_inbound import confirm_lots
from lotkeeper.services.reports import (
    KIND_DUPLICATE,
    report_discrepancy,
    report_duplicate,
    report_job_discrepancy,
    resolve_job_report,
    resolve_report,
)


@pytest.mark.integration
@pytest.mark.asyncio
class TestLotReports:

    async def test_report_flags_lot(self, db_session: AsyncSession, seed):
        lot = seed.lots[0]
        reports = await report_discrepancy([lot.lot_id, 99999], seed.crew.user_id, db=db_session)

        assert len(reports) == 1
        assert reports[0].report_status == REPORT_PENDING
        assert reports[0].reported_by == seed.crew.user_id
        assert lot.report is True

    async def test_accepting_clears_flag(self, db_session: AsyncSession, seed):
        lot = seed.lots[0]
        await report_discrepancy([lot.lot_id], seed.crew.user_id, db=db_session)

        resolved = await resolve_report(lot.lot_id, REPORT_ACCEPTED, seed.office.user_id, db=db_session)

        assert resolved.report_status == REPORT_ACCEPTED
        assert resolved.resolved_by == seed.office.user_id
        assert resolved.resolved_on is not None
        assert lot.report is False

    async def test_flag_stays_while_any_report_open(self, db_session: AsyncSession, seed):
        lot = seed.lots[1]
        await report_discrepancy([lot.lot_id], seed.crew.user_id, db=db_session)
        await report_discrepancy([lot.lot_id], seed.admin.user_id, db=db_session)

        await resolve_report(lot.lot_id, REPORT_DECLINED, seed.office.user_id, db=db_session)
        assert lot.report is True

        await resolve_report(lot.lot_id, REPORT_ACCEPTED, seed.office.user_id, db=db_session)
        assert lot.report is False

        open_reports = await db_session.scalar(
            select(func.count()).select_from(LotReport).where(LotReport.report_status == REPORT_PENDING)
        )
        assert open_reports == 0

    async def test_reports_do_not_block_confirmation(self, db_session: AsyncSession, seed):
        lot = seed.lots[0]
        await report_discrepancy([lot.lot_id], seed.crew.user_id, db=db_session)

        inserted = await confirm_lots([lot.lot_id], seed.crew.user_id, db=db_session)

        assert len(inserted) == 1
        await db_session.refresh(lot)
        assert lot.status == LOT_RECEIVED
        assert lot.report is True

    async def test_accepted_duplicate_marks_lot(self, db_session: AsyncSession, seed):
        lot = seed.lots[2]
        await report_duplicate([lot.lot_id], seed.crew.user_id, db=db_session)
        assert lot.report_duplicate is True

        resolved = await resolve_report(
            lot.lot_id, REPORT_ACCEPTED, seed.office.user_id, kind=KIND_DUPLICATE, db=db_session
        )

        assert resolved.is_resolved is True
        assert lot.report_duplicate is False
        assert lot.is_duplicated is True

    async def test_nothing_to_resolve(self, db_session: AsyncSession, seed):
        assert await resolve_report(seed.lots[0].lot_id, REPORT_ACCEPTED, seed.office.user_id, db=db_session) is None
        assert await resolve_report(99999, REPORT_ACCEPTED, seed.office.user_id, db=db_session) is None

    async def test_unknown_decision_rejected(self, db_session: AsyncSession, seed):
        with pytest.raises(BusinessLogicError):
            await resolve_report(seed.lots[0].lot_id, "maybe", seed.office.user_id, db=db_session)


@pytest.mark.integration
@pytest.mark.asyncio
class TestJobReports:

    async def test_flags_every_unflagged_lot(self, db_session: AsyncSession, seed):
        await report_discrepancy([seed.lots[0].lot_id], seed.crew.user_id, db=db_session)

        processed = await report_job_discrepancy(seed.job_no, seed.crew.user_id, "lacking", db=db_session)

        assert processed == 2
        for lot in seed.lots:
            await db_session.refresh(lot)
            assert lot.report is True
        job_report = await db_session.scalar(select(JobReport))
        assert job_report.discrepancy_type == "lacking"
        assert job_report.report_status == REPORT_PENDING

    async def test_nothing_left_to_flag(self, db_session: AsyncSession, seed):
        assert await report_job_discrepancy(seed.job_no, seed.crew.user_id, None, db=db_session) == 3
        assert await report_job_discrepancy(seed.job_no, seed.crew.user_id, None, db=db_session) == 0
        assert await report_job_discrepancy("SINI-0000-0000", seed.crew.user_id, None, db=db_session) == 0

        count = await db_session.scalar(select(func.count()).select_from(JobReport))
        assert count == 1

    async def test_resolving_job_report_clears_flags(self, db_session: AsyncSession, seed):
        await report_job_discrepancy(seed.job_no, seed.crew.user_id, "extra", db=db_session)

        resolved = await resolve_job_report(seed.job_no, REPORT_ACCEPTED, seed.office.user_id, db=db_session)

        assert resolved.report_status == REPORT_ACCEPTED
        assert resolved.resolved_by == seed.office.user_id
        for lot in seed.lots:
            await db_session.refresh(lot)
            assert lot.report is False
        assert await resolve_job_report(seed.job_no, REPORT_ACCEPTED, seed.office.user_id, db=db_session) is None

    async def test_open_lot_report_survives_job_resolution(self, db_session: AsyncSession, seed):
        lot = seed.lots[0]
        await report_job_discrepancy(seed.job_no, seed.crew.user_id, "lacking", db=db_session)
        await report_discrepancy([lot.lot_id], seed.crew.user_id, db=db_session)

        await resolve_job_report(seed.job_no, REPORT_DECLINED, seed.office.user_id, db=db_session)

        await db_session.refresh(lot)
        assert lot.report is True
        await db_session.refresh(seed.lots[1])
        assert seed.lots[1].report is False

    async def test_open_job_report_keeps_lot_flagged(self, db_session: AsyncSession, seed):
        lot = seed.lots[0]
        await report_discrepancy([lot.lot_id], seed.crew.user_id, db=db_session)
        await report_job_discrepancy(seed.job_no, seed.crew.user_id, "lacking", db=db_session)

        await resolve_report(lot.lot_id, REPORT_ACCEPTED, seed.office.user_id, db=db_session)
        assert lot.report is True

        await resolve_job_report(seed.job_no, REPORT_ACCEPTED, seed.office.user_id, db=db_session)
        await db_session.refresh(lot)
        assert lot.report is False
