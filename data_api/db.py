"""
Database engine and session factory.

The async engine is created on first use, so importing this module never
opens a connection or requires the database driver.

Usage:
    from data_api.db import get_session_factory

    session_factory = get_session_factory()
    async with session_factory(user_context=ClaimsUserContext()) as session:
        ...
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from data_api.persistence import AuditingSession
from kernel.config.logging import get_logger
from kernel.config.settings import settings

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _mask_password(url: str) -> str:
    if "@" not in url:
        return url
    credentials, host = url.split("@", 1)
    if ":" in credentials.split("//", 1)[-1]:
        credentials = credentials.rsplit(":", 1)[0] + ":***"
    return f"{credentials}@{host}"


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build a session factory whose sessions stamp audit fields on commit.

    autoflush is off so that nothing reaches the database before commit;
    expire_on_commit is off so entities stay readable after commit.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        sync_session_class=AuditingSession,
        autoflush=False,
        expire_on_commit=False,
    )


def get_engine() -> AsyncEngine:
    """Get the async engine, creating it on first call."""
    global _engine

    if _engine is None:
        url = settings.database_url
        logger.info("Creating database engine for {DatabaseUrl}", _mask_password(url))

        engine_options: dict = {
            "echo": settings.db_echo,
            "pool_pre_ping": True,  # Verify connections before using
        }
        if not url.startswith("sqlite"):
            engine_options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                pool_recycle=settings.db_pool_recycle,
            )

        _engine = create_async_engine(url, **engine_options)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory, creating the engine on first call."""
    global _session_factory

    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
        logger.debug("Database session factory created")

    return _session_factory


async def close_database_engine() -> None:
    """Dispose of the engine's connection pool (for graceful shutdown)."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


def reset_database_bootstrap() -> None:
    """Forget the engine and session factory (for tests)."""
    global _engine, _session_factory
    _engine = None
    _session_factory = None
