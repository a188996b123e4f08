"""
Background indexer that keeps the local story index in step with Hacker News.

On start the indexer seeds an empty store with the newest few thousand stories,
then polls for new stories on a fixed interval. Only one pass runs at a time: a
pass that cannot take the lock within ``lock_timeout_seconds`` is skipped, not
queued. Setting the stop event ends the loop; a pass in progress notices it
between remote fetches and drops what it collected.
"""

import asyncio
import math
from collections.abc import Awaitable, Callable
from contextlib import suppress

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hnsearch.config import settings
from hnsearch.core.cache import CacheService
from hnsearch.core.exceptions import RemoteSourceError
from hnsearch.core.extractors.base import StorySource
from hnsearch.core.services.runs import IndexingRunService
from hnsearch.core.services.search import SearchRepository
from hnsearch.core.services.stories import StoryService
from hnsearch.schemas.stories import HackerNewsItem

IndexStats = dict[str, int]

CANCELLED_NOTE = "Cancelled during shutdown"


def _has_title(story: HackerNewsItem) -> bool:
    return bool(story.title and story.title.strip())


class StoryIndexer:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        client: StorySource,
        cache: CacheService,
        interval_seconds: float | None = None,
        bulk_size: int | None = None,
        bulk_page_size: int | None = None,
        incremental_size: int | None = None,
        lock_timeout_seconds: float | None = None,
        page_delay_seconds: float | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.client = client
        self.cache = cache
        self.interval_seconds = settings.INDEXING_INTERVAL_SECONDS if interval_seconds is None else interval_seconds
        self.bulk_size = settings.INITIAL_BULK_SIZE if bulk_size is None else bulk_size
        self.bulk_page_size = settings.BULK_PAGE_SIZE if bulk_page_size is None else bulk_page_size
        self.incremental_size = settings.INCREMENTAL_CHECK_SIZE if incremental_size is None else incremental_size
        self.lock_timeout_seconds = (
            settings.INDEXING_LOCK_TIMEOUT_SECONDS if lock_timeout_seconds is None else lock_timeout_seconds
        )
        self.page_delay_seconds = settings.BULK_PAGE_DELAY_SECONDS if page_delay_seconds is None else page_delay_seconds

        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        if self._task is not None and not self._task.done():
            return self._task

        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="story-indexer")
        return self._task

    async def stop(self, grace_seconds: float = 5.0) -> None:
        self._stop_event.set()
        task, self._task = self._task, None
        if task is None:
            return

        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=grace_seconds)
        except TimeoutError:
            logger.warning(f"Indexer did not stop within {grace_seconds}s, cancelling")
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def run(self) -> None:
        logger.info(f"Story indexer started (interval {self.interval_seconds}s)")

        try:
            if await self._store_is_empty():
                await self.bulk_seed()
        except Exception as e:
            logger.exception(f"Initial indexing failed: {e}")

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                pass
            if self._stop_event.is_set():
                break

            try:
                await self.incremental_update()
            except Exception as e:
                logger.exception(f"Incremental indexing failed, retrying in {self.interval_seconds}s: {e}")

        logger.info("Story indexer stopped")

    async def _store_is_empty(self) -> bool:
        async with self.session_factory() as session:
            return await SearchRepository(session).count_stories() == 0

    async def _single_flight(self, kind: str, index_pass: Callable[[], Awaitable[IndexStats | None]]) -> IndexStats | None:
        try:
            async with asyncio.timeout(self.lock_timeout_seconds):
                await self._lock.acquire()
        except TimeoutError:
            logger.info(f"Skipping {kind} indexing: another pass is still running")
            return None

        try:
            return await index_pass()
        finally:
            self._lock.release()

    async def bulk_seed(self) -> IndexStats | None:
        """
        Seed the index with up to ``bulk_size`` of the newest stories.

        Returns:
            {'new': int, 'updated': int}, or None if the pass was skipped or interrupted
        """
        return await self._single_flight("bulk", self._bulk_seed)

    async def incremental_update(self) -> IndexStats | None:
        """
        Index the newest stories that are not stored yet.

        Returns:
            {'new': int, 'updated': int}, or None if the pass was skipped or interrupted
        """
        return await self._single_flight("incremental", self._incremental_update)

    async def _bulk_seed(self) -> IndexStats | None:
        story_service = StoryService(self.client, self.cache)
        pages = math.ceil(self.bulk_size / self.bulk_page_size) if self.bulk_page_size > 0 else 0

        async with self.session_factory() as session:
            runs = IndexingRunService(session)
            run = await runs.create_run("bulk")
            logger.info(f"Bulk seeding up to {self.bulk_size} stories in {pages} pages")

            try:
                collected: list[HackerNewsItem] = []
                for page in range(1, pages + 1):
                    if self._stop_event.is_set():
                        logger.info(f"Bulk seeding interrupted, discarding {len(collected)} stories")
                        await runs.fail_run(run, "Interrupted by shutdown")
                        return None

                    try:
                        result = await story_service.get_stories(page, self.bulk_page_size)
                    except RemoteSourceError as e:
                        logger.warning(f"Bulk seeding page {page} failed: {e}")
                        continue

                    if not result.items:
                        break

                    collected.extend(story for story in result.items if _has_title(story))
                    if page < pages:
                        await asyncio.sleep(self.page_delay_seconds)

                if self._stop_event.is_set():
                    logger.info(f"Bulk seeding interrupted, discarding {len(collected)} stories")
                    await runs.fail_run(run, "Interrupted by shutdown")
                    return None

                collected = collected[: self.bulk_size]
                stats = await SearchRepository(session).index_stories(collected)
            except asyncio.CancelledError:
                await asyncio.shield(runs.fail_run(run, CANCELLED_NOTE))
                raise
            except Exception as e:
                await runs.fail_run(run, e)
                raise

            await runs.complete_run(run, len(collected), stats)
            return stats

    async def _incremental_update(self) -> IndexStats | None:
        story_service = StoryService(self.client, self.cache)

        async with self.session_factory() as session:
            runs = IndexingRunService(session)
            repository = SearchRepository(session)
            run = await runs.create_run("incremental")

            try:
                result = await story_service.get_stories(1, self.incremental_size)
                if self._stop_event.is_set():
                    await runs.fail_run(run, "Interrupted by shutdown")
                    return None

                candidates = [story for story in result.items if _has_title(story)]
                indexed_ids = await repository.get_indexed_ids([story.id for story in candidates])
                new_stories = [story for story in candidates if story.id not in indexed_ids]

                if new_stories:
                    stats = await repository.index_stories(new_stories)
                else:
                    logger.debug("No new stories to index")
                    stats = {"new": 0, "updated": 0}
            except asyncio.CancelledError:
                await asyncio.shield(runs.fail_run(run, CANCELLED_NOTE))
                raise
            except Exception as e:
                await runs.fail_run(run, e)
                raise

            await runs.complete_run(run, len(candidates), stats)
            return stats
