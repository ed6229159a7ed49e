"""Shared test fixtures for toolrelay."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from tests.fixtures.db import make_engine
from toolrelay.memory.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

    from toolrelay.tools.memory import InMemoryToolEndpoint


@pytest.fixture
async def db_engine() -> AsyncEngine:  # type: ignore[misc]
    engine = make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_factory(db_engine: AsyncEngine) -> Any:
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def db_session(db_factory: Any) -> AsyncSession:  # type: ignore[misc]
    """In-memory SQLite async session with FK enforcement."""
    async with db_factory() as session:
        yield session


@pytest.fixture
async def endpoint() -> InMemoryToolEndpoint:
    """Connected in-memory endpoint with search/add/explode tools."""
    from tests.fixtures.tools import make_endpoint

    ep = make_endpoint()
    await ep.connect()
    return ep
