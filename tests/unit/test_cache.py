"""
Unit tests for RedisCacheService against a mocked Redis client.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from hnsearch.core.cache import NullCacheService, RedisCacheService
from hnsearch.schemas.stories import HackerNewsItem


@pytest.fixture
def redis_client():
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock(return_value=True)
    client.delete = AsyncMock(return_value=1)
    return client


@pytest.fixture
def cache(redis_client):
    return RedisCacheService(redis_client, prefix="test:")


class TestRedisCacheService:
    async def test_miss_returns_none(self, cache, redis_client):
        assert await cache.get("story_1", HackerNewsItem) is None
        redis_client.get.assert_awaited_once_with("test:story_1")

    async def test_set_serializes_with_ttl(self, cache, redis_client):
        await cache.set("story_ids", [3, 2, 1], 60)

        redis_client.set.assert_awaited_once_with("test:story_ids", b"[3,2,1]", ex=60)

    async def test_hit_is_validated_into_requested_type(self, cache, redis_client):
        redis_client.get.return_value = '{"id": 5, "title": "Cached", "by": "amy", "time": 10}'

        story = await cache.get("story_5", HackerNewsItem)

        assert isinstance(story, HackerNewsItem)
        assert story.title == "Cached"
        assert story.by == "amy"

    async def test_hit_for_generic_type(self, cache, redis_client):
        redis_client.get.return_value = "[9, 8]"

        assert await cache.get("story_ids", list[int]) == [9, 8]

    async def test_unreadable_entry_is_a_miss(self, cache, redis_client):
        redis_client.get.return_value = '{"unexpected": true}'

        assert await cache.get("story_5", HackerNewsItem) is None

    async def test_redis_errors_are_misses(self, cache, redis_client):
        redis_client.get.side_effect = RedisConnectionError("down")
        redis_client.set.side_effect = RedisConnectionError("down")
        redis_client.delete.side_effect = RedisConnectionError("down")

        assert await cache.get("story_ids", list[int]) is None
        await cache.set("story_ids", [1], 60)
        await cache.remove("story_ids")

    async def test_non_positive_ttl_is_not_stored(self, cache, redis_client):
        await cache.set("story_ids", [1], 0)

        redis_client.set.assert_not_awaited()

    async def test_remove(self, cache, redis_client):
        await cache.remove("story_1")

        redis_client.delete.assert_awaited_once_with("test:story_1")


async def test_null_cache_never_hits():
    cache = NullCacheService()
    await cache.set("story_ids", [1], 60)

    assert await cache.get("story_ids", list[int]) is None
