"""Pytest configuration and fixtures for LotKeeper tests.

Every test gets a fresh SQLite database (aiosqlite) under ``tmp_path``.
``lotkeeper.database.async_session`` is pointed at it so services that open
their own transaction use the same database as the test session.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./lotkeeper_test.db")

from datetime import datetime
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from lotkeeper import database
from lotkeeper.auth.jwt import create_access_token
from lotkeeper.config import settings
from lotkeeper.database import Base, get_db
from lotkeeper.main import app
from lotkeeper.models.lot import LOT_PENDING, Lot
from lotkeeper.models.reference import (
    Brand,
    Commodity,
    ExLmeWarehouse,
    ExWarehouseLocation,
    InboundWarehouse,
    Shape,
)
from lotkeeper.models.schedule import ScheduleInbound
from lotkeeper.models.user import User, UserRole
from lotkeeper.services.confirm_inbound import confirm_lots
from lotkeeper.services.grn_document import RenderedGrn, get_grn_renderer

JOB_NO = "SINI-2024-0042"


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create a throwaway SQLite database with every table."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lotkeeper.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine, monkeypatch):
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    monkeypatch.setattr(database, "async_session", factory)
    monkeypatch.setattr(database, "engine", test_engine)
    return factory


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session the test drives; services join it when passed ``db=``."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uploads_dir(tmp_path, monkeypatch) -> str:
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "uploads_dir", str(path))
    monkeypatch.setattr(settings, "grn_output_dir", str(path / "grn"))
    return str(path)


# ── Test Data Fixtures ───────────────────────────────────────────

@pytest_asyncio.fixture
async def seed(db_session: AsyncSession) -> SimpleNamespace:
    """Users, reference data, one schedule batch and three Pending lots (committed)."""
    office = User(username="office1", full_name="Office One", role=UserRole.OFFICE)
    crew = User(username="crew1", full_name="Crew One", role=UserRole.CREW)
    admin = User(username="admin1", full_name="Admin One", role=UserRole.ADMINISTRATOR)
    db_session.add_all([office, crew, admin])
    db_session.add_all([
        Commodity(commodity_name="Copper"),
        Commodity(commodity_name="Aluminium"),
        Brand(brand_name="KGHM"),
        Brand(brand_name="Codelco"),
        Shape(shape_name="Cathode"),
        Shape(shape_name="Ingot"),
        ExLmeWarehouse(ex_lme_warehouse_name="Henry Bath"),
        InboundWarehouse(inbound_warehouse_name="Port Klang"),
        ExWarehouseLocation(ex_warehouse_location_name="Block A"),
    ])
    await db_session.flush()

    schedule = ScheduleInbound(
        user_id=office.user_id, job_no=JOB_NO, inbound_date=datetime(2024, 3, 5, 2, 0)
    )
    db_session.add(schedule)
    await db_session.flush()

    lots = [
        Lot(
            job_no=JOB_NO,
            lot_no=n,
            schedule_inbound_id=schedule.schedule_inbound_id,
            commodity="Copper",
            brand="KGHM",
            shape="Cathode",
            ex_lme_warehouse="Henry Bath",
            inbound_warehouse="Port Klang",
            ex_warehouse_location="Block A",
            ex_warehouse_lot=f"EWL-{n:03d}",
            ex_warehouse_warrant=f"W-{n:03d}",
            expected_bundle_count=2,
            gross_weight=25.1,
            net_weight=25.0,
            status=LOT_PENDING,
            inbound_date=datetime(2024, 3, 5, 2, 0),
        )
        for n in (1, 2, 3)
    ]
    db_session.add_all(lots)
    await db_session.commit()

    return SimpleNamespace(
        job_no=JOB_NO,
        office=office,
        crew=crew,
        admin=admin,
        schedule=schedule,
        lots=lots,
    )


@pytest.fixture
def lot_factory(db_session: AsyncSession, seed):
    """Add (and commit) another lot on the seeded schedule."""
    async def _make(lot_no: int, **overrides) -> Lot:
        fields = dict(
            job_no=seed.job_no,
            lot_no=lot_no,
            schedule_inbound_id=seed.schedule.schedule_inbound_id,
            commodity="Copper",
            brand="KGHM",
            shape="Cathode",
            ex_lme_warehouse="Henry Bath",
            inbound_warehouse="Port Klang",
            ex_warehouse_location="Block A",
            ex_warehouse_lot=f"EWL-{lot_no:03d}",
            expected_bundle_count=1,
            net_weight=10.0,
            gross_weight=10.2,
            status=LOT_PENDING,
        )
        fields.update(overrides)
        lot = Lot(**fields)
        db_session.add(lot)
        await db_session.commit()
        return lot

    return _make


@pytest_asyncio.fixture
async def confirmed_inbounds(db_session: AsyncSession, seed) -> list:
    """Lots 1 and 2 confirmed by the crew user (committed)."""
    inbounds = await confirm_lots(
        [seed.lots[0].lot_id, seed.lots[1].lot_id], seed.crew.user_id, db=db_session
    )
    await db_session.commit()
    return inbounds


# ── GRN rendering ────────────────────────────────────────────────

class FakeRenderer:
    """Records documents instead of drawing them."""

    def __init__(self):
        self.documents = []
        self.fail = False

    def render(self, document):
        if self.fail:
            raise RuntimeError("printer on fire")
        self.documents.append(document)
        return RenderedGrn(
            pdf_bytes=b"%PDF-1.4 fake",
            preview_bytes=b"\x89PNG fake",
            pdf_path=f"grn/GRN_{document.grn_no.replace('/', '_')}.pdf",
            preview_path=f"grn/GRN_{document.grn_no.replace('/', '_')}.png",
        )


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


# ── HTTP client ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(db_session, fake_renderer, uploads_dir) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden database and renderer dependencies."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_grn_renderer] = lambda: fake_renderer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(seed) -> dict:
    token = create_access_token(user_id=seed.crew.user_id, role=seed.crew.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(seed) -> dict:
    token = create_access_token(user_id=seed.admin.user_id, role=seed.admin.role.value)
    return {"Authorization": f"Bearer {token}"}


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: HTTP endpoint tests")
