from collections.abc import AsyncGenerator

import redis.asyncio as redis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hnsearch.core.cache import CacheService, RedisCacheService
from hnsearch.core.extractors.hackernews import HackerNewsClient
from hnsearch.core.redis import get_redis_client
from hnsearch.core.services.maintenance import DatabaseMaintenanceService
from hnsearch.core.services.search import SearchRepository
from hnsearch.core.services.stories import StoryService
from hnsearch.database import SessionLocal, engine

_hackernews_client: HackerNewsClient | None = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database session.
    Yields a database session and ensures proper cleanup.
    """
    async with SessionLocal() as session:
        yield session


def get_hackernews_client() -> HackerNewsClient:
    """Process-wide Hacker News client, created on first use."""
    global _hackernews_client
    if _hackernews_client is None:
        _hackernews_client = HackerNewsClient()
    return _hackernews_client


async def close_hackernews_client() -> None:
    global _hackernews_client
    if _hackernews_client is not None:
        await _hackernews_client.close()
        _hackernews_client = None


async def get_cache_service(redis_client: redis.Redis = Depends(get_redis_client)) -> CacheService:
    return RedisCacheService(redis_client)


async def get_story_service(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    client: HackerNewsClient = Depends(get_hackernews_client),
) -> StoryService:
    return StoryService(client, cache, session=db)


async def get_search_repository(db: AsyncSession = Depends(get_db)) -> SearchRepository:
    return SearchRepository(db)


async def get_maintenance_service() -> DatabaseMaintenanceService:
    return DatabaseMaintenanceService(engine)
