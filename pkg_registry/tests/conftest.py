import datetime
import os
from typing import Any, AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from pkg_registry.db import BaseModel, Package, PackageRepository
from pkg_registry.services import ReleaseService
from pkg_registry.settings import get_app_settings, get_db_settings, get_log_settings
from pkg_registry.tests.mocks import FrozenClock, PackageFactory

MINIMAL_ENV_VARS = {
    "DB_DSN_OVERRIDE": "sqlite+aiosqlite:///:memory:",
    "LOG_LEVEL": "DEBUG",
}
TEST_DB_DSN = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def minimal_env_vars() -> Generator[None, Any, None]:
    with patch.dict(os.environ, MINIMAL_ENV_VARS):
        yield

    get_app_settings.cache_clear()
    get_db_settings.cache_clear()
    get_log_settings.cache_clear()


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, Any]:
    engine = create_async_engine(TEST_DB_DSN, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, Any]:
    session_factory = async_sessionmaker(bind=db_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime.datetime(2026, 1, 15, 12, 0, 0))


@pytest.fixture
def release_service(db_session: AsyncSession, clock: FrozenClock) -> ReleaseService:
    return ReleaseService(session=db_session, clock=clock)


@pytest.fixture
def package_factory(db_session: AsyncSession) -> PackageFactory:
    async def create_package(name: str) -> Package:
        repository = PackageRepository(session=db_session)
        package = await repository.create({"name": name})
        await db_session.commit()
        return package

    return create_package


@pytest.fixture
def mock_db_session() -> AsyncMock:
    s = AsyncMock(spec=AsyncSession)
    s.begin = AsyncMock()
    s.info = {}
    s.in_transaction = MagicMock(return_value=False)
    s.__aenter__ = AsyncMock(return_value=s)
    return s


@pytest.fixture
def mock_db_session_factory(mock_db_session: AsyncMock) -> Generator[MagicMock, None, None]:
    _session_factory = MagicMock(spec=async_sessionmaker, return_value=mock_db_session)
    with patch(
        "pkg_registry.db.session.get_session_factory", return_value=_session_factory
    ) as _mock:
        yield _mock
