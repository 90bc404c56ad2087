"""Database connection helpers."""

from collections.abc import Sequence
import os
from typing import TypeVar

from dotenv import load_dotenv
from pydantic import BaseModel
from sqlalchemy import inspect
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from src.helpers.constants import DB_POOL_RECYCLE_SECONDS, DB_POOL_SIZE


# Load environment variables from .env file
load_dotenv()

Base = declarative_base()

DBModelType = TypeVar("DBModelType")

_async_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_database_url() -> str:
    """Get the database URL from environment variables.

    DATABASE_URL is used as-is when set. Otherwise the URL is assembled from
    the POSTGRE_* variables using the psycopg (version 3) async driver.

    Returns:
        str: SQLAlchemy async database URL

    Raises:
        ValueError: If required environment variables are not set
    """
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    postgre_host = os.getenv("POSTGRE_HOST")
    if not postgre_host:
        msg = "POSTGRE_HOST is not set"
        raise ValueError(msg)

    postgre_port = os.getenv("POSTGRE_PORT", "5432")

    postgre_user = os.getenv("POSTGRE_USER")
    if not postgre_user:
        msg = "POSTGRE_USER is not set"
        raise ValueError(msg)

    postgre_password = os.getenv("POSTGRE_PASSWORD")
    if not postgre_password:
        msg = "POSTGRE_PASSWORD is not set"
        raise ValueError(msg)

    postgre_db = os.getenv("POSTGRE_DB")
    if not postgre_db:
        msg = "POSTGRE_DB is not set"
        raise ValueError(msg)

    return (
        "postgresql+psycopg://"
        f"{postgre_user}:{postgre_password}"
        f"@{postgre_host}:{postgre_port}"
        f"/{postgre_db}"
    )


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """Create an async engine, pooling connections for PostgreSQL URLs.

    Args:
        database_url: SQLAlchemy async database URL

    Returns:
        AsyncEngine: New engine instance
    """
    if make_url(database_url).get_backend_name() == "postgresql":
        return create_async_engine(
            database_url,
            echo=False,
            pool_size=DB_POOL_SIZE,
            pool_recycle=DB_POOL_RECYCLE_SECONDS,
            pool_pre_ping=True,
        )
    return create_async_engine(database_url, echo=False)


def get_async_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first use."""
    global _async_engine  # noqa: PLW0603
    if _async_engine is None:
        _async_engine = create_engine_for_url(get_database_url())
    return _async_engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory, creating it on first use."""
    global _session_factory  # noqa: PLW0603
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create all tables registered on Base if they don't exist.

    Args:
        engine: Engine to use (defaults to the process-wide engine)
    """
    # Import models so they register on Base.metadata
    import src.data.validators.db  # noqa: F401

    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose the process-wide engine and forget the session factory."""
    global _async_engine, _session_factory  # noqa: PLW0603
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _session_factory = None


async def insert_ignore_models(
    session: AsyncSession,
    db_model_class: type[DBModelType],
    pydantic_models: Sequence[BaseModel],
) -> None:
    """Insert models with INSERT ... ON CONFLICT (primary key) DO NOTHING.

    Rows whose primary key already exists are left untouched, which makes the
    insert idempotent. PostgreSQL and SQLite dialects are supported. The caller
    owns the transaction.

    Args:
        session: Open async session
        db_model_class: The SQLAlchemy model class (e.g., ValidatorDB, BlockLogDB)
        pydantic_models: Pydantic model instances with data to insert

    Examples:
        await insert_ignore_models(
            session,
            db_model_class=BlockLogDB,
            pydantic_models=[entry],
        )

    Raises:
        ValueError: If the database model class cannot be inspected or the
            session is bound to an unsupported dialect
    """
    data = [model.model_dump() for model in pydantic_models]
    if not data:
        return

    # Get primary key column names using SQLAlchemy inspection
    mapper = inspect(db_model_class)
    if not mapper:
        msg = f"Cannot inspect {db_model_class}"
        raise ValueError(msg)
    pk_columns = [col.name for col in mapper.primary_key]

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(db_model_class).values(data)
    elif dialect == "sqlite":
        stmt = sqlite_insert(db_model_class).values(data)
    else:
        msg = f"Unsupported dialect for insert-or-ignore: {dialect}"
        raise ValueError(msg)

    await session.execute(stmt.on_conflict_do_nothing(index_elements=pk_columns))


__all__ = [
    "Base",
    "create_engine_for_url",
    "create_tables",
    "dispose_engine",
    "get_async_engine",
    "get_database_url",
    "get_session_factory",
    "insert_ignore_models",
]
