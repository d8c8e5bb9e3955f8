"""Reference name → ID resolution tests."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lotkeeper.middleware.exceptions import LookupNotFoundError
from lotkeeper.models.reference import Commodity, Shape
from lotkeeper.services.lookup import resolve_id, resolve_lot_references


@pytest.mark.unit
@pytest.mark.asyncio
class TestResolveId:

    async def test_matches_case_insensitively(self, db_session: AsyncSession, seed):
        expected = await db_session.scalar(
            select(Commodity.commodity_id).where(Commodity.commodity_name == "Copper")
        )
        found = await resolve_id(db_session, "commodities", "commodity_name", "commodity_id", "  cOPPER ")
        assert found == expected

    async def test_unknown_name_raises(self, db_session: AsyncSession, seed):
        with pytest.raises(LookupNotFoundError) as exc_info:
            await resolve_id(db_session, "commodities", "commodity_name", "commodity_id", "Unobtainium")
        assert exc_info.value.table == "commodities"
        assert exc_info.value.value == "Unobtainium"

    async def test_blank_name_raises(self, db_session: AsyncSession, seed):
        with pytest.raises(LookupNotFoundError):
            await resolve_id(db_session, "shapes", "shape_name", "shape_id", "   ")
        with pytest.raises(LookupNotFoundError):
            await resolve_id(db_session, "shapes", "shape_name", "shape_id", None)

    async def test_unknown_table_or_column_rejected(self, db_session: AsyncSession, seed):
        with pytest.raises(ValueError):
            await resolve_id(db_session, "commodity; drop table lot", "commodity_name", "commodity_id", "Copper")
        with pytest.raises(ValueError):
            await resolve_id(db_session, "commodities", "name", "commodity_id", "Copper")


@pytest.mark.unit
@pytest.mark.asyncio
class TestResolveLotReferences:

    async def test_resolves_all_six(self, db_session: AsyncSession, seed):
        refs = await resolve_lot_references(db_session, seed.lots[0])

        assert set(refs) == {
            "commodity_id", "shape_id", "brand_id", "ex_lme_warehouse_id",
            "inbound_warehouse_id", "ex_warehouse_location_id",
        }
        cathode = await db_session.scalar(select(Shape.shape_id).where(Shape.shape_name == "Cathode"))
        assert refs["shape_id"] == cathode

    async def test_one_miss_fails_the_lot(self, db_session: AsyncSession, lot_factory):
        lot = await lot_factory(9, inbound_warehouse="Atlantis")
        with pytest.raises(LookupNotFoundError) as exc_info:
            await resolve_lot_references(db_session, lot)
        assert exc_info.value.table == "inboundwarehouses"
