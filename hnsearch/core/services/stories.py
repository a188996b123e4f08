"""
Story lookups across the cache, the local store and the Hacker News API.

A story is resolved from the cheapest tier that has it: Redis first, then the
``stories`` table, then the remote API. Whatever is found is written back to the
cache so the next lookup stops at the first tier.
"""

import asyncio

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hnsearch.config import settings
from hnsearch.core.cache import CacheService
from hnsearch.core.extractors.base import StorySource
from hnsearch.core.normalizers.stories import StoryNormalizer
from hnsearch.models.stories import Story
from hnsearch.schemas.common import PagedResult
from hnsearch.schemas.stories import HackerNewsItem

STORY_IDS_CACHE_KEY = "story_ids"


def story_cache_key(story_id: int) -> str:
    return f"story_{story_id}"


class StoryService:
    def __init__(
        self,
        client: StorySource,
        cache: CacheService,
        session: AsyncSession | None = None,
        ids_ttl_seconds: int | None = None,
        story_ttl_seconds: int | None = None,
        max_concurrency: int = 10,
    ) -> None:
        self.client = client
        self.cache = cache
        self.session = session
        self.ids_ttl_seconds = settings.STORY_IDS_CACHE_TTL_SECONDS if ids_ttl_seconds is None else ids_ttl_seconds
        self.story_ttl_seconds = settings.STORY_CACHE_TTL_SECONDS if story_ttl_seconds is None else story_ttl_seconds
        self.max_concurrency = max_concurrency
        self.normalizer = StoryNormalizer()

    async def get_new_story_ids(self) -> list[int]:
        """Newest story ids, newest first."""
        cached = await self.cache.get(STORY_IDS_CACHE_KEY, list[int])
        if cached is not None:
            return cached

        story_ids = await self.client.get_newest_story_ids()
        await self.cache.set(STORY_IDS_CACHE_KEY, story_ids, self.ids_ttl_seconds)
        return story_ids

    async def get_story(self, story_id: int) -> HackerNewsItem | None:
        """
        Resolve a single story.

        Returns:
            The story, or None if no tier has it

        Raises:
            RemoteSourceError: if the story is not stored locally and the API is unreachable
        """
        cached = await self.cache.get(story_cache_key(story_id), HackerNewsItem)
        if cached is not None:
            return cached

        stored = await self._load_stored([story_id])
        story = stored.get(story_id)
        if story is None:
            story = await self.client.get_story(story_id)

        if story is not None:
            await self.cache.set(story_cache_key(story_id), story, self.story_ttl_seconds)
        return story

    async def get_stories(self, page: int = 1, page_size: int = 20) -> PagedResult[HackerNewsItem]:
        """
        One page of the newest stories.

        Stories that cannot be resolved are left out of the page, so a page may
        hold fewer than ``page_size`` items. ``total_count`` is the length of the
        newest-id list.
        """
        story_ids = await self.get_new_story_ids()
        start = (page - 1) * page_size
        page_ids = story_ids[start : start + page_size]

        resolved: dict[int, HackerNewsItem] = {}
        for story_id in page_ids:
            cached = await self.cache.get(story_cache_key(story_id), HackerNewsItem)
            if cached is not None:
                resolved[story_id] = cached

        missing = [story_id for story_id in page_ids if story_id not in resolved]
        found = await self._load_stored(missing)
        found.update(await self._fetch_remote([story_id for story_id in missing if story_id not in found]))

        for story_id, story in found.items():
            await self.cache.set(story_cache_key(story_id), story, self.story_ttl_seconds)
        resolved.update(found)

        return PagedResult[HackerNewsItem](
            items=[resolved[story_id] for story_id in page_ids if story_id in resolved],
            page=page,
            page_size=page_size,
            total_count=len(story_ids),
        )

    async def _load_stored(self, story_ids: list[int]) -> dict[int, HackerNewsItem]:
        if self.session is None or not story_ids:
            return {}

        result = await self.session.execute(select(Story).where(Story.id.in_(story_ids)))
        return {story.id: self.normalizer.to_item(story) for story in result.scalars()}

    async def _fetch_remote(self, story_ids: list[int]) -> dict[int, HackerNewsItem]:
        if not story_ids:
            return {}

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def fetch_with_semaphore(story_id: int) -> HackerNewsItem | None:
            async with semaphore:
                return await self.client.get_story(story_id)

        results = await asyncio.gather(*(fetch_with_semaphore(story_id) for story_id in story_ids), return_exceptions=True)

        stories: dict[int, HackerNewsItem] = {}
        for story_id, result in zip(story_ids, results, strict=True):
            if isinstance(result, HackerNewsItem):
                stories[story_id] = result
            elif isinstance(result, Exception):
                logger.warning(f"Skipping story {story_id}: {result}")
        return stories
