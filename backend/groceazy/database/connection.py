"""
Database connection management with SQLAlchemy async engine.

This module provides async database connection management using SQLAlchemy 2.0
with connection pooling, health checks, and proper error handling. It exposes
the engine and session factory consumed by the transaction manager and the
FastAPI dependencies.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from groceazy.core.config import get_settings
from groceazy.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def _convert_database_url_to_async(url: str) -> str:
    """
    Convert PostgreSQL URL to async format.

    Args:
        url: Database connection URL

    Returns:
        Async-compatible database URL with asyncpg driver
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_options(database_url: str) -> Dict[str, Any]:
    settings = get_settings()

    if database_url.startswith("sqlite"):
        return {"poolclass": NullPool}

    options: Dict[str, Any] = {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "connect_args": {
            "server_settings": {"application_name": settings.app_name},
            "command_timeout": 60,
            "timeout": 10,
        },
    }
    if settings.is_test:
        options["poolclass"] = NullPool
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


def create_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create async SQLAlchemy engine with connection pooling.

    Args:
        database_url: Optional URL overriding the configured one

    Returns:
        Configured async SQLAlchemy engine
    """
    settings = get_settings()
    url = _convert_database_url_to_async(database_url or settings.database_url)

    engine = create_async_engine(url, echo=settings.debug, **_engine_options(url))

    logger.info(
        "Database engine created",
        dialect=engine.dialect.name,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        environment=settings.environment,
    )

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory with the options every unit of work relies on."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """
    Get or create the global async database engine.

    Raises:
        RuntimeError: If engine initialization fails
    """
    global _engine

    if _engine is None:
        try:
            _engine = create_engine()
        except Exception as e:
            logger.error(
                "Failed to create database engine",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RuntimeError(f"Database engine initialization failed: {e}") from e

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get or create the global session factory.

    Raises:
        RuntimeError: If session factory initialization fails
    """
    global _session_factory

    if _session_factory is None:
        try:
            _session_factory = create_session_factory(get_engine())
            logger.info("Database session factory created")
        except Exception as e:
            logger.error(
                "Failed to create session factory",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise RuntimeError(f"Session factory initialization failed: {e}") from e

    return _session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create async database session with automatic cleanup.

    Commits when the block exits normally and rolls back otherwise.

    Yields:
        Async database session
    """
    session = get_session_factory()()

    try:
        yield session
        await session.commit()
    except Exception as e:
        await session.rollback()
        logger.error(
            "Database session rolled back",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        await session.close()


async def check_database_health(
    engine: Optional[AsyncEngine] = None,
    max_retries: int = 3,
    retry_delay: float = 1.0,
) -> bool:
    """
    Check database connectivity with retry logic.

    Args:
        engine: Engine to check, the global engine when omitted
        max_retries: Maximum number of connection attempts
        retry_delay: Delay between retries in seconds

    Returns:
        True if database is healthy, False otherwise
    """
    for attempt in range(max_retries):
        try:
            async with (engine or get_engine()).connect() as conn:
                await conn.execute(text("SELECT 1"))
                logger.debug("Database health check passed", attempt=attempt + 1)
                return True
        except (OperationalError, DBAPIError) as e:
            logger.warning(
                "Database health check failed - connection error",
                attempt=attempt + 1,
                max_retries=max_retries,
                error=str(e),
            )
        except SQLAlchemyError as e:
            logger.error(
                "Database health check failed - SQLAlchemy error",
                attempt=attempt + 1,
                max_retries=max_retries,
                error=str(e),
                error_type=type(e).__name__,
            )
        if attempt < max_retries - 1:
            await asyncio.sleep(retry_delay * (2**attempt))

    logger.error("Database health check failed after all retries", max_retries=max_retries)
    return False


async def close_database_connections() -> None:
    """
    Close all database connections and dispose of the engine.

    Called during application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        try:
            await _engine.dispose()
            logger.info("Database connections closed and engine disposed")
        except SQLAlchemyError as e:
            logger.error(
                "Error closing database connections",
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            _engine = None
            _session_factory = None
