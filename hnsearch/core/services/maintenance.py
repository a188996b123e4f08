"""
Retention janitor for the SQLite store.

Stories whose ``indexed_at`` is older than the retention window are deleted in
batches. If the store is still over its size budget once the regular window is
exhausted, the window shrinks to the aggressive one. Freed pages are returned to
the filesystem with VACUUM.
"""

from datetime import UTC, datetime, timedelta

from loguru import logger
from sqlalchemy import delete, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from hnsearch.config import settings
from hnsearch.models.stories import Story
from hnsearch.schemas.maintenance import DatabaseStats, MaintenanceReport

VACUUM_USAGE_PERCENTAGE = 70


class DatabaseMaintenanceService:
    def __init__(
        self,
        engine: AsyncEngine,
        max_size_bytes: int | None = None,
        retention_days: int | None = None,
        aggressive_retention_days: int | None = None,
        batch_size: int | None = None,
    ) -> None:
        self.engine = engine
        self.max_size_bytes = max_size_bytes if max_size_bytes is not None else settings.MAX_DATABASE_SIZE_BYTES
        self.retention_days = retention_days if retention_days is not None else settings.RETENTION_DAYS
        self.aggressive_retention_days = (
            aggressive_retention_days if aggressive_retention_days is not None else settings.AGGRESSIVE_RETENTION_DAYS
        )
        self.batch_size = batch_size if batch_size is not None else settings.CLEANUP_BATCH_SIZE

    async def _pragma(self, conn: AsyncConnection, name: str) -> int:
        return int((await conn.execute(text(f"PRAGMA {name}"))).scalar_one())

    async def get_stats(self) -> DatabaseStats:
        cutoff = datetime.now(UTC) - timedelta(days=self.retention_days)

        async with self.engine.connect() as conn:
            page_size = await self._pragma(conn, "page_size")
            page_count = await self._pragma(conn, "page_count")
            freelist_count = await self._pragma(conn, "freelist_count")

            story_count, oldest, newest = (
                await conn.execute(select(func.count(Story.id), func.min(Story.indexed_at), func.max(Story.indexed_at)))
            ).one()
            expired = (
                await conn.execute(select(func.count()).select_from(Story).where(Story.indexed_at < cutoff))
            ).scalar_one()

        return DatabaseStats(
            size_bytes=page_count * page_size,
            used_bytes=(page_count - freelist_count) * page_size,
            max_size_bytes=self.max_size_bytes,
            story_count=story_count or 0,
            oldest_indexed_at=oldest,
            newest_indexed_at=newest,
            should_cleanup_old_data=expired > 0,
        )

    async def _delete_batch(self, cutoff: datetime) -> int:
        expired_ids = select(Story.id).where(Story.indexed_at < cutoff).limit(self.batch_size).scalar_subquery()
        async with self.engine.begin() as conn:
            result = await conn.execute(delete(Story).where(Story.id.in_(expired_ids)))
        return result.rowcount or 0

    async def cleanup_old_data(self) -> int:
        """
        Delete expired stories.

        Returns:
            Number of stories deleted
        """
        now = datetime.now(UTC)
        cutoff = now - timedelta(days=self.retention_days)
        aggressive = False
        deleted = 0

        while True:
            batch_deleted = await self._delete_batch(cutoff)
            deleted += batch_deleted
            if batch_deleted:
                logger.debug(f"Deleted {batch_deleted} stories indexed before {cutoff.isoformat()}")
            if batch_deleted == self.batch_size:
                continue

            if aggressive or not (await self.get_stats()).is_over_limit:
                break

            logger.warning(
                f"Database still over its size budget, shortening retention to {self.aggressive_retention_days} days",
            )
            cutoff = now - timedelta(days=self.aggressive_retention_days)
            aggressive = True

        if deleted:
            logger.info(f"Retention cleanup deleted {deleted} stories")
        return deleted

    async def optimize(self) -> bool:
        """VACUUM the database. Returns False if it could not run."""
        try:
            async with self.engine.connect() as conn:
                conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
                await conn.execute(text("VACUUM"))
        except SQLAlchemyError as e:
            logger.error(f"VACUUM failed: {e}")
            return False

        logger.info("Database vacuumed")
        return True

    async def perform_maintenance(self) -> MaintenanceReport:
        before = await self.get_stats()
        logger.info(
            f"Database maintenance: {before.size_mb} MB, {before.usage_percentage}% of budget, "
            f"{before.story_count} stories",
        )

        deleted = 0
        if before.should_cleanup_old_data or before.is_near_limit:
            deleted = await self.cleanup_old_data()

        vacuumed = False
        if deleted > 0 or before.usage_percentage > VACUUM_USAGE_PERCENTAGE:
            vacuumed = await self.optimize()

        after = await self.get_stats()
        return MaintenanceReport(deleted=deleted, vacuumed=vacuumed, before=before, after=after)
