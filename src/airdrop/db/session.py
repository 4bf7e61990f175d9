"""
Merkle Airdrop Distributor - Database Session

Async database engine and session management for the claim store.
"""

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from airdrop.core.config import settings

logger = structlog.get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; pool sizing applies to server databases only."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=settings.DEBUG)

    return create_async_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_POOL_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.DEBUG,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the process-wide session factory, creating the engine on first use."""
    global _engine, _session_factory
    if _session_factory is None:
        _engine = create_engine(settings.DATABASE_URL)
        _session_factory = create_session_factory(_engine)
    return _session_factory


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Verify connectivity and ensure the airdrop tables exist."""
    if engine is None:
        get_session_factory()
        engine = _engine

    logger.info("Initializing database connection", url=engine.url.render_as_string())

    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await ensure_airdrop_tables(conn)

    logger.info("Database connection verified")


async def ensure_airdrop_tables(conn) -> None:
    """Create claim and root tables if they do not exist."""
    # Amounts are uint256, stored as decimal strings
    await conn.execute(text("""
        CREATE TABLE IF NOT EXISTS airdrop_claims (
            address VARCHAR(42) PRIMARY KEY,
            amount VARCHAR(78) NOT NULL,
            root VARCHAR(66) NOT NULL,
            claimed_at TIMESTAMP WITH TIME ZONE NOT NULL
        )
    """))

    await conn.execute(text("""
        CREATE TABLE IF NOT EXISTS airdrop_roots (
            epoch INTEGER PRIMARY KEY,
            root VARCHAR(66) NOT NULL,
            rotated_at TIMESTAMP WITH TIME ZONE NOT NULL
        )
    """))

    await conn.execute(text("""
        CREATE INDEX IF NOT EXISTS idx_airdrop_claims_root
        ON airdrop_claims (root)
    """))

    logger.info("Airdrop tables verified")


async def close_db() -> None:
    """Close database connections gracefully."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("Database connections closed")
    _engine = None
    _session_factory = None

