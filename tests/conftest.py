"""
Test configuration and fixtures for HN Search tests.

Provides an in-memory database with the full-text index, a fake Hacker News
source, a dict-backed cache and a mocked Redis client.
"""

import os

# Settings are read at import time, so these must be set before hnsearch is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["INDEXING_ENABLED"] = "false"
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

from collections.abc import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hnsearch.database import init_db  # noqa: E402
from hnsearch.schemas.stories import HackerNewsItem  # noqa: E402
from tests.factories import FakeStorySource, InMemoryCacheService, make_item  # noqa: E402


@pytest_asyncio.fixture
async def test_engine():
    """Create a test database engine with the full-text index installed."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, autoflush=False, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_source() -> FakeStorySource:
    return FakeStorySource()


@pytest.fixture
def memory_cache() -> InMemoryCacheService:
    return InMemoryCacheService()


@pytest.fixture
def mock_redis_client():
    """Create a mock Redis client that always misses."""
    mock_client = MagicMock()
    mock_client.get = AsyncMock(return_value=None)
    mock_client.set = AsyncMock(return_value=True)
    mock_client.delete = AsyncMock(return_value=1)
    mock_client.ping = AsyncMock(return_value=True)
    return mock_client


@pytest.fixture
def seeded_items() -> list[HackerNewsItem]:
    """Four stories covering link and text posts across a range of scores."""
    return [
        make_item(1, "JS Best Practices", by="dev", score=150, url="https://example.com/a"),
        make_item(2, "React Testing", by="tester", score=200, url="https://react.dev/t"),
        make_item(3, "No URL Story", by="dev2", score=75, url=None),
        make_item(4, "Popular Article", by="pop", score=500, url="https://popular.com/x"),
    ]
