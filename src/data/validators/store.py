"""Ledger store: persistence primitives for validators and block logs.

No business logic lives here. Every write is idempotent or a plain overwrite,
so the indexer can retry any of them safely.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from typing import Protocol

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.data.validators.db import BlockLogDB, ValidatorDB
from src.data.validators.models import BlockLogEntry, NetworkStats, Validator
from src.helpers.db import create_tables, get_session_factory, insert_ignore_models
from src.helpers.logging import get_logger
from src.helpers.parsers import normalize_address

logger = get_logger(__name__)


class LedgerStore(Protocol):
    """Store operations the indexer engine depends on."""

    async def upsert_validator(self, address: str) -> None: ...

    async def insert_block_log(
        self, block_number: int, validator_address: str, timestamp: datetime
    ) -> None: ...

    async def create_tables(self) -> None: ...

    async def latest_block_log(self) -> BlockLogEntry | None: ...

    async def block_count_for(self, validator_address: str) -> int: ...

    async def all_validators(self) -> list[Validator]: ...

    async def update_validator_stats(
        self,
        address: str,
        total_blocks: int,
        missed_blocks: int,
        uptime_pct: float,
    ) -> None: ...


def _canonical(address: str) -> str:
    canonical = normalize_address(address)
    if canonical is None:
        msg = "Validator address cannot be empty"
        raise ValueError(msg)
    return canonical


class SQLLedgerStore:
    """LedgerStore on SQLAlchemy async sessions (PostgreSQL or SQLite)."""

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession] | None = None
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: Session factory to use (defaults to the
                process-wide factory built from DATABASE_URL / POSTGRE_*)
        """
        self._session_factory = session_factory

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def create_tables(self) -> None:
        """Create the validators and block_logs tables if missing.

        Uses the engine the session factory is bound to.
        """
        await create_tables(self.session_factory.kw.get("bind"))

    async def upsert_validator(self, address: str) -> None:
        """Insert a validator unless the address is already known."""
        async with self._transaction() as session:
            await insert_ignore_models(
                session,
                db_model_class=ValidatorDB,
                pydantic_models=[Validator(address=_canonical(address))],
            )

    async def insert_block_log(
        self, block_number: int, validator_address: str, timestamp: datetime
    ) -> None:
        """Record a block's producer; a block number already logged is left as-is."""
        entry = BlockLogEntry(
            block_number=block_number,
            validator=_canonical(validator_address),
            timestamp=timestamp,
        )
        async with self._transaction() as session:
            await insert_ignore_models(
                session, db_model_class=BlockLogDB, pydantic_models=[entry]
            )

    async def latest_block_log(self) -> BlockLogEntry | None:
        """Return the highest-numbered block log entry, if any."""
        async with self.session_factory() as session:
            stmt = select(BlockLogDB).order_by(BlockLogDB.block_number.desc()).limit(1)
            row = (await session.execute(stmt)).scalar_one_or_none()
            return BlockLogEntry.model_validate(row) if row is not None else None

    async def block_count_for(self, validator_address: str) -> int:
        """Count logged blocks produced by a validator."""
        async with self.session_factory() as session:
            stmt = select(func.count()).where(
                BlockLogDB.validator == _canonical(validator_address)
            )
            return int((await session.execute(stmt)).scalar_one())

    async def all_validators(self) -> list[Validator]:
        """Return all validators, most productive first."""
        async with self.session_factory() as session:
            stmt = select(ValidatorDB).order_by(
                ValidatorDB.total_blocks.desc(), ValidatorDB.address
            )
            rows = (await session.execute(stmt)).scalars().all()
            return [Validator.model_validate(row) for row in rows]

    async def get_validator(self, address: str) -> Validator | None:
        """Look up a single validator by address (case-insensitive)."""
        async with self.session_factory() as session:
            row = await session.get(ValidatorDB, _canonical(address))
            return Validator.model_validate(row) if row is not None else None

    async def update_validator_stats(
        self,
        address: str,
        total_blocks: int,
        missed_blocks: int,
        uptime_pct: float,
    ) -> None:
        """Overwrite a validator's derived stats."""
        async with self._transaction() as session:
            await session.execute(
                update(ValidatorDB)
                .where(ValidatorDB.address == _canonical(address))
                .values(
                    total_blocks=total_blocks,
                    missed_blocks=missed_blocks,
                    uptime_percentage=uptime_pct,
                )
            )

    async def network_stats(self) -> NetworkStats:
        """Aggregate validator count, mean uptime and block totals."""
        async with self.session_factory() as session:
            stmt = select(
                func.count(ValidatorDB.address),
                func.coalesce(func.avg(ValidatorDB.uptime_percentage), 0),
                func.coalesce(func.sum(ValidatorDB.total_blocks), 0),
                func.coalesce(func.sum(ValidatorDB.missed_blocks), 0),
            )
            count, avg_uptime, total_blocks, total_missed = (
                await session.execute(stmt)
            ).one()
            return NetworkStats(
                total_validators=int(count),
                avg_uptime=round(float(avg_uptime), 2),
                total_blocks=int(total_blocks),
                total_missed=int(total_missed),
            )


__all__ = ["LedgerStore", "SQLLedgerStore"]
