"""
Engine and session factory of the registry's database.

Connectors are prepared once per process (CLI command, migrations run)
by initialize_database() and released by close_database().
"""

import logging
from typing import Any, TypeAlias

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    close_all_sessions,
    create_async_engine,
)

from pkg_registry.exceptions import DatabaseError
from pkg_registry.settings.db import get_db_settings
from pkg_registry.utils import singleton

__all__ = (
    "AsyncDBConnectors",
    "get_session_factory",
    "initialize_database",
    "close_database",
)
logger = logging.getLogger(__name__)
SessionFactoryT: TypeAlias = async_sessionmaker[AsyncSession]
# pool size which SQLAlchemy uses when nothing is configured
DEFAULT_POOL_SIZE = 5


@singleton
class AsyncDBConnectors:
    """Keeps engine and session factory which are built from DB settings"""

    def __init__(self) -> None:
        self.settings = get_db_settings()
        self.engine: AsyncEngine | None = None
        self.session_factory: SessionFactoryT | None = None
        self.exc: Exception | None = None

    def engine_options(self) -> dict[str, Any]:
        """Pool options are passed to the engine only when they are configured"""
        options: dict[str, Any] = {"echo": self.settings.echo}
        pool_size = self.settings.pool_min_size
        if pool_size:
            options["pool_size"] = pool_size

        if self.settings.pool_max_size:
            options["max_overflow"] = self.settings.pool_max_size - (
                pool_size or DEFAULT_POOL_SIZE
            )

        return options

    async def init_connection(self) -> None:
        logger.info("[DB] Connecting to %s ...", self.settings.info)
        try:
            self.engine = create_async_engine(self.settings.database_dsn, **self.engine_options())
            self.session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            await self._ping_connection()

        except Exception as exc:
            logger.error("[DB] Failed to initialize database: %r", exc)
            await self.close_connection()
            raise

        logger.info("[DB] Connected to %s", self.settings.info)

    async def _ping_connection(self) -> None:
        """Runs 'SELECT 1' to be sure that DB accepts connections"""
        if self.engine is None:
            raise RuntimeError("Engine is not initialized, cannot ping database")

        try:
            async with self.engine.connect() as connection:
                await connection.execute(text("SELECT 1"))

        except Exception as exc:
            self.exc = exc
            logger.error("[DB] Database %s is unreachable: %r", self.settings.info, exc)
            raise DatabaseError("Failed to ping database") from exc

    async def close_connection(self) -> None:
        """Closes opened sessions and disposes the engine"""
        engine, self.engine, self.session_factory = self.engine, None, None
        if engine is None:
            return

        await close_all_sessions()
        await engine.dispose()
        if self.exc:
            logger.warning("[DB] Connection closed after failure: %r", self.exc)
        else:
            logger.info("[DB] Connection closed")


_db_connectors = AsyncDBConnectors()


def get_session_factory() -> SessionFactoryT:
    """Session factory of the initialized database"""
    if (session_factory := _db_connectors.session_factory) is None:
        logger.warning("[DB] Requested session factory before database initialization")
        raise RuntimeError(
            "Session factory not initialized. Make sure the database was initialized first."
        )

    return session_factory


async def initialize_database() -> None:
    await _db_connectors.init_connection()


async def close_database() -> None:
    await _db_connectors.close_connection()
