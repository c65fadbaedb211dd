"""Alembic environment: migrations run against settings.database_url via asyncpg."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from src.core.config import settings
from src.core.database.base import Base

# Registers every table on Base.metadata for autogenerate
import src.core.audit.models  # noqa: F401
import src.core.auth.models  # noqa: F401
import src.modules.access.models  # noqa: F401
import src.modules.custody.models  # noqa: F401
import src.modules.demob.models  # noqa: F401
import src.modules.items.models  # noqa: F401
import src.modules.offboarding.models  # noqa: F401
import src.modules.people.models  # noqa: F401
import src.modules.procurement.models  # noqa: F401
import src.modules.warehouses.models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
# configparser interpolation treats % specially
config.set_main_option("sqlalchemy.url", settings.database_url.replace("%", "%%"))


def _configure(**kwargs) -> None:
    context.configure(target_metadata=target_metadata, compare_type=True, **kwargs)


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of connecting."""
    _configure(
        url=settings.database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_sync(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section) or {},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(_run_sync)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
