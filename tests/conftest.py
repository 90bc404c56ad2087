"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.data.validators.store import SQLLedgerStore
from src.helpers.db import Base, create_tables


@pytest_asyncio.fixture
async def sqlite_engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with all tables created.

    Yields:
        AsyncEngine: Engine sharing one connection across sessions
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the in-memory engine."""
    return async_sessionmaker(
        sqlite_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest.fixture
def ledger_store(session_factory: async_sessionmaker[AsyncSession]) -> SQLLedgerStore:
    """SQLLedgerStore backed by the in-memory database."""
    return SQLLedgerStore(session_factory)
