from typing import Any, Protocol, TypeVar

import redis.asyncio as redis
from loguru import logger
from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_json

T = TypeVar("T")


class CacheService(Protocol):
    """Protocol for a time-bounded key/value cache."""

    async def get(self, key: str, value_type: type[T]) -> T | None:
        """Returns the cached value, or None on a miss or an expired entry."""
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    async def remove(self, key: str) -> None: ...


class RedisCacheService:
    """
    Cache backed by Redis.

    Values are stored as JSON with a per-key expiry. An unreachable Redis
    behaves like an empty cache: reads miss and writes are dropped.
    """

    def __init__(self, client: redis.Redis, prefix: str = "hnsearch:"):
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str, value_type: type[T]) -> T | None:
        try:
            raw = await self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

        if raw is None:
            return None

        try:
            return TypeAdapter(value_type).validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return

        try:
            await self.client.set(self._key(key), to_json(value), ex=ttl_seconds)
        except redis.RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def remove(self, key: str) -> None:
        try:
            await self.client.delete(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Cache delete failed for {key}: {e}")


class NullCacheService:
    """Cache that stores nothing. Used when caching is disabled."""

    async def get(self, key: str, value_type: type[T]) -> T | None:
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        return None

    async def remove(self, key: str) -> None:
        return None
