"""Bookkeeping for indexing passes."""

from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hnsearch.models.runs import IndexingRun

ERROR_NOTES_MAX_LENGTH = 1000


class IndexingRunService:
    """Creates and closes ``IndexingRun`` records."""

    def __init__(self, db_session: AsyncSession) -> None:
        self.db = db_session

    async def create_run(self, kind: str, started_at: datetime | None = None) -> IndexingRun:
        """
        Record the start of an indexing pass.

        Raises:
            SQLAlchemyError: If database operation fails
        """
        if started_at is None:
            started_at = datetime.now(UTC)

        try:
            run = IndexingRun(kind=kind, started_at=started_at, status="running")
            self.db.add(run)
            await self.db.commit()
            await self.db.refresh(run)
            logger.debug(f"Started {kind} indexing run ID={run.id}")
            return run
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create indexing run: {str(e)}")
            raise

    async def complete_run(self, run: IndexingRun, items_fetched: int, stats: dict[str, int]) -> IndexingRun:
        run.status = "completed"
        run.items_fetched = items_fetched
        run.items_new = stats.get("new", 0)
        run.items_updated = stats.get("updated", 0)
        run.completed_at = datetime.now(UTC)
        await self.db.commit()

        logger.info(
            f"Indexing run ID={run.id} ({run.kind}) completed: "
            f"{run.items_fetched} fetched, {run.items_new} new, {run.items_updated} updated",
        )
        return run

    async def fail_run(self, run: IndexingRun, error: BaseException | str) -> IndexingRun:
        """Mark ``run`` failed. The session may hold a rolled-back transaction."""
        await self.db.rollback()
        await self.db.refresh(run)

        run.status = "failed"
        run.error_notes = str(error)[:ERROR_NOTES_MAX_LENGTH]
        run.completed_at = datetime.now(UTC)
        await self.db.commit()

        logger.warning(f"Indexing run ID={run.id} ({run.kind}) failed: {run.error_notes}")
        return run

    async def get_latest_run(self, kind: str | None = None) -> IndexingRun | None:
        stmt = select(IndexingRun).order_by(IndexingRun.started_at.desc(), IndexingRun.id.desc()).limit(1)
        if kind is not None:
            stmt = stmt.where(IndexingRun.kind == kind)

        try:
            result = await self.db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get latest indexing run: {str(e)}")
            return None

