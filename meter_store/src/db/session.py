"""
Async database engine and session factory.

Uses SQLAlchemy 2.x async engine with the aiosqlite driver for the
embedded default, or asyncpg for PostgreSQL. SQLite connections are put
into WAL journal mode so range queries read a snapshot while appends
proceed.

CHANGELOG:
- 2026-10-13: Add create_schema() for embedded databases (STORY-004)
- 2026-10-13: Enable WAL and busy_timeout on SQLite connections (STORY-005)
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from meter_store.src.config import get_settings
from meter_store.src.db.models import Base


def _install_sqlite_pragmas(engine: AsyncEngine, busy_timeout_ms: int) -> None:
    """Run the per-connection PRAGMAs on every new SQLite connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.close()


def create_engine(url: str | None = None) -> AsyncEngine:
    """Create an async SQLAlchemy engine from configuration.

    Args:
        url: Optional database URL. Defaults to ``DATABASE_URL``.

    Returns:
        AsyncEngine: Configured async engine.
    """
    settings = get_settings()
    engine = create_async_engine(url or settings.DATABASE_URL, echo=False)
    if engine.dialect.name == "sqlite":
        _install_sqlite_pragmas(engine, settings.SQLITE_BUSY_TIMEOUT_MS)
    return engine


def create_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory.

    Args:
        engine: Optional async engine. If not provided, creates one from config.

    Returns:
        async_sessionmaker: Factory for creating AsyncSession instances.
    """
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema(engine: AsyncEngine) -> None:
    """Create the records table and its index when they do not exist yet.

    Used for the embedded SQLite default and in tests; managed databases
    are migrated with Alembic instead.

    Args:
        engine: Async engine to create the schema on.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
