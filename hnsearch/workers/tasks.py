"""
Celery tasks for index upkeep.

Each task runs its coroutine on a fresh event loop with its own engine, so a
worker process never shares connections across loops.
"""

import asyncio
import concurrent.futures
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from hnsearch.config import settings
from hnsearch.core.services.maintenance import DatabaseMaintenanceService
from hnsearch.core.services.search import SearchRepository
from hnsearch.database import build_engine
from hnsearch.workers.celery_app import celery_app

T = TypeVar("T")


def _run_async(factory: Callable[[], Awaitable[T]]) -> T:
    try:
        # Check if an event loop is already running in the current thread
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(factory())

    # Run the new event loop in a separate thread to avoid conflicts
    with concurrent.futures.ThreadPoolExecutor() as executor:
        future = executor.submit(lambda: asyncio.run(factory()))
        return future.result()


async def _with_engine(work: Callable[[AsyncEngine], Awaitable[T]]) -> T:
    engine = build_engine(settings.DATABASE_URL)
    try:
        return await work(engine)
    finally:
        await engine.dispose()


async def _maintenance_async(engine: AsyncEngine) -> dict[str, Any]:
    report = await DatabaseMaintenanceService(engine).perform_maintenance()
    return {
        "deleted": report.deleted,
        "vacuumed": report.vacuumed,
        "size_bytes": report.after.size_bytes,
        "usage_percentage": report.after.usage_percentage,
    }


async def _rebuild_index_async(engine: AsyncEngine) -> dict[str, Any]:
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        indexed = await SearchRepository(session).rebuild_index()
    return {"indexed": indexed}


@celery_app.task(name="maintenance.cleanup")
def maintenance_cleanup_task() -> dict[str, Any]:
    """Apply the retention policy and VACUUM when worthwhile."""
    logger.info("Starting database maintenance task")
    try:
        result = _run_async(lambda: _with_engine(_maintenance_async))
    except Exception as e:
        logger.error(f"Database maintenance task failed: {e}")
        return {"deleted": 0, "vacuumed": False, "error": str(e)}

    logger.info(f"Database maintenance task completed: {result}")
    return result


@celery_app.task(name="search.rebuild_index")
def rebuild_search_index_task() -> dict[str, Any]:
    """Repopulate the full-text index from the stored stories."""
    logger.info("Starting search index rebuild task")
    try:
        result = _run_async(lambda: _with_engine(_rebuild_index_async))
    except Exception as e:
        logger.error(f"Search index rebuild task failed: {e}")
        return {"indexed": 0, "error": str(e)}

    logger.info(f"Search index rebuild task completed: {result}")
    return result
