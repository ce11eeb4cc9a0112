"""
Alembic environment of the registry.

DSN comes from DB settings (DB_* env variables or DB_DSN_OVERRIDE), revisions
are numbered sequentially: 0001_initial.py, 0002_<message>.py, ...
"""

import asyncio
import logging
from logging.config import fileConfig
from typing import Any

from alembic import context
from alembic.operations.ops import MigrationScript
from alembic.script import ScriptDirectory
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from pkg_registry.db.models import BaseModel
from pkg_registry.settings.db import get_db_settings

logger = logging.getLogger("alembic.env")
config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

config.set_main_option("sqlalchemy.url", get_db_settings().database_dsn)
target_metadata = BaseModel.metadata


def next_revision_id(head_revision: str | None) -> str:
    """
    >>> next_revision_id(None)
    '0001'
    >>> next_revision_id("0009")
    '0010'
    """
    last_number = int(head_revision) if head_revision else 0
    return f"{last_number + 1:04}"


def process_revision_directives(
    migration_context: Any, revision: Any, directives: list[MigrationScript]
) -> None:
    """Skips empty autogenerated revisions and assigns sequential revision IDs"""
    script = directives[0]
    if script.upgrade_ops is not None and script.upgrade_ops.is_empty():
        logger.info("No changes in schema detected.")
        directives[:] = []
        return

    head_revision = ScriptDirectory.from_config(migration_context.config).get_current_head()
    script.rev_id = next_revision_id(head_revision)


def configure_context(**options: Any) -> None:
    context.configure(
        target_metadata=target_metadata,
        process_revision_directives=process_revision_directives,
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emits SQL script without a DB connection (alembic upgrade --sql)"""
    configure_context(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )


def run_sync_migrations(connection: Connection) -> None:
    configure_context(connection=connection)


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    async with engine.connect() as connection:
        await connection.run_sync(run_sync_migrations)

    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
