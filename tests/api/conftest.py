"""
API test fixtures: the FastAPI app wired to the in-memory store, the fake
Hacker News source and a mocked Redis client.
"""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from hnsearch.api.deps import get_db, get_hackernews_client, get_maintenance_service
from hnsearch.core.redis import get_redis_client
from hnsearch.core.services.maintenance import DatabaseMaintenanceService
from hnsearch.main import app


@pytest_asyncio.fixture
async def client(test_engine, session_factory, fake_source, mock_redis_client) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis_client():
        yield mock_redis_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_hackernews_client] = lambda: fake_source
    app.dependency_overrides[get_redis_client] = override_get_redis_client
    app.dependency_overrides[get_maintenance_service] = lambda: DatabaseMaintenanceService(
        test_engine,
        max_size_bytes=10_000_000_000,
    )

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
