from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from irguard.core.config import get_settings
from irguard.domain.models import Base
from irguard.services.quota.rate_limiter import reset_rate_limiter


@pytest.fixture
async def engine(tmp_path) -> AsyncEngine:
    # File-backed sqlite so concurrent sessions use separate connections.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'irguard.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture(autouse=True)
def _reset_cached_state() -> None:
    # Clear settings and limiter caches so env overrides never leak between tests.
    yield
    get_settings.cache_clear()
    reset_rate_limiter()
