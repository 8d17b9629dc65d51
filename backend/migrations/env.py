"""
Alembic environment configuration for async database migrations.

This module configures the Alembic migration environment with async support,
model imports, and migration context for both offline and online modes. The
database URL always comes from application settings.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from groceazy.core.config import get_settings
from groceazy.core.logging import get_logger
from groceazy.database.connection import _convert_database_url_to_async

# Importing the models package registers every table with Base.metadata
from groceazy.database.models import Base

# Alembic Config object provides access to values within the .ini file
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

settings = get_settings()
logger = get_logger(__name__)

target_metadata = Base.metadata

database_url = _convert_database_url_to_async(settings.database_url)
config.set_main_option("sqlalchemy.url", database_url)
logger.info(
    "Database URL configured from environment",
    url_prefix=database_url.split("://")[0],
)


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    Configures the context with just a URL so the SQL is emitted to the
    script output without a DBAPI connection.
    """
    logger.info("Running migrations in offline mode")

    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
    )

    with context.begin_transaction():
        context.run_migrations()
    logger.info("Offline migrations completed successfully")


def do_run_migrations(connection: Connection) -> None:
    """
    Execute migrations with the given connection.

    Args:
        connection: SQLAlchemy connection to use for migrations
    """
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        transaction_per_migration=True,
    )

    with context.begin_transaction():
        context.run_migrations()
    logger.info("Migration execution completed successfully")


async def run_async_migrations() -> None:
    """
    Run migrations in 'online' mode with async support.

    Creates an async Engine and associates a connection with the context.
    """
    connectable = create_async_engine(database_url, poolclass=pool.NullPool)

    try:
        async with connectable.connect() as connection:
            logger.info("Database connection established for migrations")
            await connection.run_sync(do_run_migrations)
    except Exception as e:
        logger.error(
            "Async migration failed",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise
    finally:
        await connectable.dispose()


def run_migrations_online() -> None:
    """Entry point for online migrations, delegating to the async runner."""
    logger.info("Running migrations in online mode")
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
