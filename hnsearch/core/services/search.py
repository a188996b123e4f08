"""
Search repository: writes stories into the index and queries it.

Searches go to the FTS5 table first. If that statement fails (for instance the
virtual table is missing or corrupted) the same request is answered by a plain
substring scan over ``stories``; if that fails too, the result is an empty page.
"""

from datetime import UTC, datetime
from typing import Any

from loguru import logger
from sqlalchemy import func, insert, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hnsearch.core.exceptions import SearchValidationError
from hnsearch.core.normalizers.base import NormalizationError
from hnsearch.core.normalizers.stories import StoryNormalizer
from hnsearch.core.services.query_compiler import SearchQueryCompiler, build_prefix_expression
from hnsearch.core.services.runs import IndexingRunService
from hnsearch.models.search_index import CLEAR_SEARCH_INDEX, POPULATE_SEARCH_INDEX, search_document, stories_search
from hnsearch.models.stories import Story
from hnsearch.schemas.common import PagedResult
from hnsearch.schemas.search import IndexingRunSummary, SearchQuery, SearchStatistics
from hnsearch.schemas.stories import HackerNewsItem, StoryRecord

MAX_PAGE_SIZE = 100
MAX_QUERY_LENGTH = 200
MAX_SUGGESTIONS = 20
MIN_SUGGESTION_LENGTH = 2
POPULAR_LIMIT = 10
ID_CHUNK_SIZE = 500

# Bound parameters must fit a signed 64-bit SQLite INTEGER
SQLITE_MAX_INTEGER = 2**63 - 1
SQLITE_MIN_INTEGER = -(2**63)


def validate_search_query(query: SearchQuery) -> None:
    if query.page < 1:
        raise SearchValidationError("page must be greater than or equal to 1")
    if not 1 <= query.page_size <= MAX_PAGE_SIZE:
        raise SearchValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
    if len(query.query) > MAX_QUERY_LENGTH:
        raise SearchValidationError(f"query must be at most {MAX_QUERY_LENGTH} characters")
    if query.offset > SQLITE_MAX_INTEGER:
        raise SearchValidationError("page is too large")

    filters = query.filters
    if filters is None:
        return
    for name in ("min_score", "max_score"):
        value = getattr(filters, name)
        if value is not None and not SQLITE_MIN_INTEGER <= value <= SQLITE_MAX_INTEGER:
            raise SearchValidationError(f"{name} is out of range")


def _chunks(values: list[int], size: int = ID_CHUNK_SIZE):
    for start in range(0, len(values), size):
        yield values[start : start + size]


class SearchRepository:
    def __init__(self, db_session: AsyncSession) -> None:
        self.db = db_session
        self.normalizer = StoryNormalizer()

    # Queries

    async def search(self, query: SearchQuery) -> PagedResult[HackerNewsItem]:
        """
        Run a structured search.

        Raises:
            SearchValidationError: if page, page_size or query length is out of bounds
        """
        validate_search_query(query)
        compiler = SearchQueryCompiler(query)

        try:
            story_ids = await self._execute_ids(compiler.fts_ids_statement())
            total_count = await self._count(compiler.fts_count_statement())
        except SQLAlchemyError as e:
            logger.warning(f"Full-text search failed, falling back to a table scan: {e}")
            await self.db.rollback()
            try:
                story_ids = await self._execute_ids(compiler.fallback_ids_statement())
                total_count = await self._count(compiler.fallback_count_statement())
            except SQLAlchemyError as fallback_error:
                logger.error(f"Fallback search failed: {fallback_error}")
                await self.db.rollback()
                return PagedResult[HackerNewsItem](items=[], page=query.page, page_size=query.page_size, total_count=None)

        try:
            items = await self._load_items(story_ids)
        except SQLAlchemyError as e:
            logger.error(f"Loading search results failed: {e}")
            await self.db.rollback()
            return PagedResult[HackerNewsItem](items=[], page=query.page, page_size=query.page_size, total_count=None)

        return PagedResult[HackerNewsItem](items=items, page=query.page, page_size=query.page_size, total_count=total_count)

    async def get_suggestions(self, partial: str, limit: int = 10) -> list[str]:
        """Titles, authors and domains that start a word with ``partial``."""
        partial = partial.strip()
        if len(partial) < MIN_SUGGESTION_LENGTH or limit < 1:
            return []

        limit = min(limit, MAX_SUGGESTIONS)
        stmt = (
            select(stories_search.c.title, stories_search.c.author, stories_search.c.domain)
            .where(search_document.match(build_prefix_expression(partial)))
            .order_by(stories_search.c.score.desc(), stories_search.c.created_at.desc())
            .limit(limit)
        )

        try:
            result = await self.db.execute(stmt)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.warning(f"Suggestion lookup failed for '{partial}': {e}")
            await self.db.rollback()
            return []

        needle = partial.casefold()
        seen: set[str] = set()
        suggestions: list[str] = []
        for row in rows:
            for value in row:
                if not value or needle not in value.casefold():
                    continue
                key = value.casefold()
                if key in seen:
                    continue
                seen.add(key)
                suggestions.append(value)
        return suggestions[:limit]

    async def _execute_ids(self, stmt) -> list[int]:
        result = await self.db.execute(stmt)
        return [int(story_id) for story_id in result.scalars().all()]

    async def _count(self, stmt) -> int | None:
        try:
            return (await self.db.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            logger.warning(f"Search count failed: {e}")
            return None

    async def _load_items(self, story_ids: list[int]) -> list[HackerNewsItem]:
        if not story_ids:
            return []

        result = await self.db.execute(select(Story).where(Story.id.in_(story_ids)))
        stories = {story.id: story for story in result.scalars()}
        return [self.normalizer.to_item(stories[story_id]) for story_id in story_ids if story_id in stories]

    # Writes

    async def index_stories(self, items: list[HackerNewsItem]) -> dict[str, int]:
        """
        Insert new stories and refresh existing ones in a single transaction.

        ``created_at`` is written only on insert. The FTS table follows through
        the ``stories`` triggers.

        Returns:
            Dict with counts: {'new': int, 'updated': int}

        Raises:
            SQLAlchemyError: If the write fails; the transaction is rolled back
        """
        records: dict[int, StoryRecord] = {}
        for item in items:
            try:
                records[item.id] = self.normalizer.normalize(item)
            except NormalizationError as e:
                logger.warning(f"Not indexing story {e.item_id}: {e.message}")

        if not records:
            return {"new": 0, "updated": 0}

        try:
            existing = await self.get_indexed_ids(list(records))
            now = datetime.now(UTC)

            updates: list[dict[str, Any]] = []
            inserts: list[dict[str, Any]] = []
            for story_id, record in records.items():
                values = record.model_dump()
                values["updated_at"] = now
                values["indexed_at"] = now
                if story_id in existing:
                    values.pop("created_at")
                    updates.append(values)
                else:
                    inserts.append(values)

            if updates:
                await self.db.execute(update(Story), updates)
            if inserts:
                await self.db.execute(insert(Story), inserts)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Indexing {len(records)} stories failed: {str(e)}")
            raise

        stats = {"new": len(inserts), "updated": len(updates)}
        logger.info(f"Indexed {len(records)} stories: {stats['new']} new, {stats['updated']} updated")
        return stats

    async def is_story_indexed(self, story_id: int) -> bool:
        result = await self.db.execute(select(Story.id).where(Story.id == story_id))
        return result.scalar_one_or_none() is not None

    async def get_indexed_ids(self, story_ids: list[int]) -> set[int]:
        """The subset of ``story_ids`` already stored."""
        indexed: set[int] = set()
        for chunk in _chunks(list(dict.fromkeys(story_ids))):
            result = await self.db.execute(select(Story.id).where(Story.id.in_(chunk)))
            indexed.update(result.scalars().all())
        return indexed

    async def count_stories(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(Story))
        return result.scalar_one()

    async def rebuild_index(self) -> int:
        """
        Repopulate the FTS table from ``stories``.

        Returns:
            Number of stories in the rebuilt index

        Raises:
            SQLAlchemyError: If the rebuild fails; the previous index is kept
        """
        try:
            await self.db.execute(text(CLEAR_SEARCH_INDEX))
            await self.db.execute(text(POPULATE_SEARCH_INDEX))
            indexed = (await self.db.execute(select(func.count()).select_from(stories_search))).scalar_one()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Rebuilding the search index failed: {str(e)}")
            raise

        logger.info(f"Rebuilt search index with {indexed} stories")
        return indexed

    async def get_statistics(self) -> SearchStatistics:
        totals = (
            await self.db.execute(
                select(
                    func.count(Story.id),
                    func.max(Story.indexed_at),
                    func.min(Story.created_at),
                    func.max(Story.created_at),
                ),
            )
        ).one()

        domains = await self.db.execute(
            select(Story.domain)
            .where(Story.domain.is_not(None), Story.domain != "")
            .group_by(Story.domain)
            .order_by(func.count().desc(), Story.domain)
            .limit(POPULAR_LIMIT),
        )
        authors = await self.db.execute(
            select(Story.author)
            .where(Story.author != "")
            .group_by(Story.author)
            .order_by(func.count().desc(), Story.author)
            .limit(POPULAR_LIMIT),
        )

        last_run = await IndexingRunService(self.db).get_latest_run()

        return SearchStatistics(
            total_indexed_stories=totals[0] or 0,
            last_indexed_at=totals[1],
            oldest_story_date=totals[2],
            newest_story_date=totals[3],
            popular_domains=list(domains.scalars().all()),
            popular_authors=list(authors.scalars().all()),
            last_run=IndexingRunSummary.model_validate(last_run) if last_run else None,
        )
