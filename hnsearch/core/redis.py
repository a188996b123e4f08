from collections.abc import AsyncGenerator

import redis.asyncio as redis

from hnsearch.config import settings


class RedisClient:
    _instance: redis.Redis | None = None

    @classmethod
    async def get_redis(cls) -> redis.Redis:
        """
        Get or create a Redis client instance.
        Uses a singleton pattern to avoid creating multiple connections.
        """
        if cls._instance is None:
            if not settings.REDIS_URL:
                raise ValueError("REDIS_URL is not configured")

            cls._instance = redis.from_url(settings.REDIS_URL, decode_responses=True)

        return cls._instance

    @classmethod
    async def close(cls) -> None:
        """Close the Redis connection if it exists."""
        if cls._instance is not None:
            await cls._instance.aclose()
            cls._instance = None


async def get_redis_client() -> AsyncGenerator[redis.Redis, None]:
    """
    FastAPI dependency for Redis client.
    The shared connection is closed on application shutdown, not per request.
    """
    client = await RedisClient.get_redis()
    yield client


async def check_redis_connection(client: redis.Redis | None = None) -> bool:
    """Return True if Redis answers a PING."""
    try:
        client = client or await RedisClient.get_redis()
        await client.ping()
        return True
    except (redis.RedisError, ValueError, OSError):
        return False
