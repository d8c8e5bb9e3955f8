"""WHERE-clause builder tests."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.models.lot import Lot
from lotkeeper.utils.filters import Predicate, any_of, build_where


async def _lot_nos(db: AsyncSession, preds) -> list[int]:
    result = await db.execute(select(Lot.lot_no).where(build_where(preds)).order_by(Lot.lot_no))
    return list(result.scalars().all())


@pytest.mark.unit
class TestPredicate:

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            Predicate(Lot.lot_no, "regex", ".*").to_clause()

    def test_values_are_bound_not_inlined(self):
        clause = Predicate(Lot.job_no, "eq", "x'; DROP TABLE lot; --").to_clause()
        assert "DROP TABLE" not in str(clause)


@pytest.mark.integration
@pytest.mark.asyncio
class TestBuildWhere:

    async def test_empty_matches_everything(self, db_session: AsyncSession, seed):
        assert await _lot_nos(db_session, []) == [1, 2, 3]

    async def test_predicates_are_anded(self, db_session: AsyncSession, seed):
        preds = [
            Predicate(Lot.lot_no, "in", [1, 2, 3]),
            Predicate(Lot.lot_no, "ne", 2),
            Predicate(Lot.commodity, "eq", "Copper"),
        ]
        assert await _lot_nos(db_session, preds) == [1, 3]

    async def test_any_of_is_ored(self, db_session: AsyncSession, seed):
        preds = [any_of(
            Predicate(Lot.ex_warehouse_lot, "ilike", "%ewl-003%"),
            Predicate(Lot.lot_no, "le", 1),
        )]
        assert await _lot_nos(db_session, preds) == [1, 3]

    async def test_range_operators(self, db_session: AsyncSession, seed):
        assert await _lot_nos(db_session, [Predicate(Lot.lot_no, "between", (2, 3))]) == [2, 3]
        assert await _lot_nos(db_session, [Predicate(Lot.lot_no, "gt", 1), Predicate(Lot.lot_no, "lt", 3)]) == [2]
        assert await _lot_nos(db_session, [Predicate(Lot.lot_no, "ge", 3)]) == [3]

    async def test_boolean_flags(self, db_session: AsyncSession, seed):
        seed.lots[1].report = True
        await db_session.flush()

        assert await _lot_nos(db_session, [Predicate(Lot.report, "is_true", True)]) == [2]
        assert await _lot_nos(db_session, [Predicate(Lot.report, "is_true", False)]) == [1, 3]
