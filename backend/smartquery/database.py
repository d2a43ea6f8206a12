"""
SmartQuery Backend: Database Session Management
===============================================

What:  Process-wide async SQLAlchemy engine, session factory, and the
       FastAPI session dependency.
How:   The engine is created explicitly by init_engine() during application
       startup and released by dispose_engine() at shutdown. Each request gets
       its own AsyncSession through get_db_session(), which commits on success
       and rolls back on error. Services never reach for the engine; they
       receive the session as an argument.

Connection Pooling (PostgreSQL):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs skip the pool arguments; aiosqlite uses its own pool class.
"""

import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from smartquery.config import Settings, settings as default_settings
from smartquery.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which Alembic reads for --autogenerate.
    """
    pass


# ── Engine State ──────────────────────────────────────────────────────────
# Set by init_engine(), cleared by dispose_engine(). None means "not serving".
engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _engine_kwargs(config: Settings) -> dict:
    kwargs = {"echo": config.log_level == "DEBUG"}
    if not config.database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=config.db_pool_size,
            max_overflow=config.db_max_overflow,
            pool_pre_ping=config.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return kwargs


async def init_engine(config: Optional[Settings] = None) -> AsyncEngine:
    """
    Create the shared engine and session factory.

    When:  Once, in the application lifespan, before requests are served.
    How:   Optionally runs create_all() when db_auto_create is set (local
           SQLite runs); otherwise the schema is managed by Alembic.

    Returns:
        The created AsyncEngine (also stored at module level).
    """
    global engine, async_session_factory

    config = config or default_settings
    if engine is not None:
        return engine

    engine = create_async_engine(config.database_url, **_engine_kwargs(config))
    # expire_on_commit=False: response models read attributes after commit
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    if config.db_auto_create:
        # Import models so every table is registered on Base.metadata
        from smartquery import models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured (db_auto_create=True)")

    logger.info("Database engine initialized (%s)", engine.url.render_as_string(hide_password=True))
    return engine


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction and re-raises
        5. Always: closes the session (returns connection to pool)

    Raises:
        StoreUnavailableError: The engine was never initialized (or already
            disposed), so no store is available to serve the request.
    """
    if async_session_factory is None:
        raise StoreUnavailableError(context={"reason": "engine not initialized"})

    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """
    Gracefully close all pooled connections.

    When:  Called during application shutdown (lifespan handler).
    """
    global engine, async_session_factory

    if engine is None:
        return
    await engine.dispose()
    engine = None
    async_session_factory = None
    logger.info("Database engine disposed")
