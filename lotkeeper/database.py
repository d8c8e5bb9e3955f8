"""Database engine, session factory, and base class.

Sessions:
  - get_db()             → FastAPI dependency; one transaction per request
  - transaction_scope()  → join a caller's session, or open and own one

Every lifecycle operation takes an optional ``db``.  When a caller passes
its session (a route, or the sync processor replaying a batch) the
operation only flushes and the caller decides commit/rollback.  When no
session is passed the operation owns the transaction and commits on
success, rolls back on any exception.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import DeclarativeBase

from lotkeeper.config import settings

_engine_kwargs = {"echo": settings.debug and settings.environment != "test"}
if not settings.database_url.startswith("sqlite"):
    _engine_kwargs.update(pool_size=20, max_overflow=10)

engine = create_async_engine(settings.database_url, **_engine_kwargs)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


class Base(DeclarativeBase):
    """Declarative base for every warehouse table."""
    pass


# ── Session dependency ──────────────────────────────────────

async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a request-scoped session; commit on success, roll back on error."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Scoped transactions for service code ────────────────────

@asynccontextmanager
async def transaction_scope(db: AsyncSession | None = None) -> AsyncIterator[AsyncSession]:
    """Join ``db`` if given, otherwise open a session that owns its transaction.

    ``async_session`` is resolved at call time, so tests can point it at a
    test engine.
    """
    if db is not None:
        yield db
        return

    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
