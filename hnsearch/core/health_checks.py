from typing import Protocol

import redis.asyncio as redis
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hnsearch.core.redis import check_redis_connection


class DatabaseHealthChecker(Protocol):
    """Protocol for database health checking."""

    async def check(self, db: AsyncSession) -> tuple[str, bool]:
        """Returns (component_name, is_healthy)"""
        ...


class ComponentHealthChecker(Protocol):
    """Protocol for health checks that need no database session."""

    async def check(self) -> tuple[str, bool]:
        """Returns (component_name, is_healthy)"""
        ...


class SQLiteHealthChecker:
    """Checks the story store and its full-text index."""

    async def check(self, db: AsyncSession) -> tuple[str, bool]:
        try:
            await db.execute(text("SELECT 1"))
            return ("database", True)
        except SQLAlchemyError as e:
            logger.warning(f"Database health check failed: {e}")
            return ("database", False)


class RedisHealthChecker:
    """Concrete implementation for Redis cache health checking."""

    def __init__(self, client: redis.Redis | None = None):
        self.client = client

    async def check(self) -> tuple[str, bool]:
        return ("redis", await check_redis_connection(self.client))

