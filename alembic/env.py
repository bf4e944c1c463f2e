# alembic/env.py
from __future__ import annotations
import asyncio
import logging
from logging.config import fileConfig
from sqlalchemy import pool
from alembic import context
from sqlalchemy.ext.asyncio import async_engine_from_config

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from app.core.config import settings
from app.core.db import Base
import app.models  # noqa: F401  registra users y password_history en Base.metadata

logger = logging.getLogger("alembic.env")
target_metadata = Base.metadata
ASYNC_DRIVERS = ("+aiomysql", "+aiosqlite")


def sync_url(url: str) -> str:
    """Offline sólo genera SQL: sin driver async en la URL."""
    for driver in ASYNC_DRIVERS:
        url = url.replace(driver, "")
    return url


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    # tablas del panel viejo que comparten la base no son nuestras
    if type_ == "table" and reflected and name not in target_metadata.tables:
        return False
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,          # cambios en JSON / Enum de users
        render_as_batch=True,       # sqlite no soporta ALTER completo
        include_object=include_object,
        **kwargs,
    )


def _run_migrations(connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    _configure(
        url=sync_url(settings.async_database_url),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = async_engine_from_config(
        {"sqlalchemy.url": settings.async_database_url},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    logger.info("Migrando %s", connectable.url.render_as_string(hide_password=True))
    try:
        async with connectable.connect() as connection:
            await connection.run_sync(_run_migrations)
    finally:
        await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
