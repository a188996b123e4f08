"""
Integration tests for SearchRepository against an in-memory SQLite database.

Covers indexing, FTS trigger sync, the full-text and fallback search paths,
suggestions, index rebuilds and statistics.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import delete, select, text
from sqlalchemy.exc import OperationalError

from hnsearch.core.exceptions import SearchValidationError
from hnsearch.core.services.runs import IndexingRunService
from hnsearch.core.services.search import SearchRepository
from hnsearch.models.search_index import stories_search
from hnsearch.models.stories import Story
from hnsearch.schemas.search import SearchFilters, SearchQuery, SearchSortOrder
from tests.factories import BASE_TIME, make_item


@pytest.fixture
def repository(db_session):
    return SearchRepository(db_session)


@pytest.fixture
async def seeded(repository, seeded_items):
    await repository.index_stories(seeded_items)
    return seeded_items


def ids(result) -> list[int]:
    return [story.id for story in result.items]


class TestIndexStories:
    async def test_new_stories_are_inserted(self, repository, seeded_items, db_session):
        stats = await repository.index_stories(seeded_items)

        assert stats == {"new": 4, "updated": 0}
        assert await repository.count_stories() == 4
        fts_count = (await db_session.execute(select(stories_search.c.rowid))).scalars().all()
        assert sorted(fts_count) == [1, 2, 3, 4]

    async def test_reindexing_is_idempotent_and_keeps_created_at(self, repository, db_session):
        original = make_item(10, "Original Title", score=5)
        await repository.index_stories([original])
        first = (await db_session.execute(select(Story).where(Story.id == 10))).scalar_one()
        created_at, first_indexed_at = first.created_at, first.indexed_at

        refreshed = make_item(10, "Original Title", score=99, created_at=BASE_TIME + timedelta(days=30))
        stats = await repository.index_stories([refreshed])

        assert stats == {"new": 0, "updated": 1}
        db_session.expire_all()
        row = (await db_session.execute(select(Story).where(Story.id == 10))).scalar_one()
        assert row.score == 99
        assert row.created_at == created_at
        assert row.indexed_at >= first_indexed_at
        assert await repository.count_stories() == 1

    async def test_duplicates_in_one_batch_keep_the_last(self, repository, db_session):
        stats = await repository.index_stories([make_item(1, "First", score=1), make_item(1, "Second", score=2)])

        assert stats == {"new": 1, "updated": 0}
        row = (await db_session.execute(select(Story).where(Story.id == 1))).scalar_one()
        assert row.title == "Second"

    async def test_stories_without_title_are_skipped(self, repository):
        stats = await repository.index_stories([make_item(1, ""), make_item(2, "   "), make_item(3, "Kept")])

        assert stats == {"new": 1, "updated": 0}
        assert await repository.get_indexed_ids([1, 2, 3]) == {3}

    async def test_empty_batch_writes_nothing(self, repository):
        assert await repository.index_stories([]) == {"new": 0, "updated": 0}

    async def test_write_failure_rolls_back_and_raises(self):
        session = MagicMock()
        session.execute = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))
        session.commit = AsyncMock()
        session.rollback = AsyncMock()

        with pytest.raises(OperationalError):
            await SearchRepository(session).index_stories([make_item(1, "Doomed")])

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()

    async def test_indexed_lookups(self, repository, seeded):
        assert await repository.is_story_indexed(2) is True
        assert await repository.is_story_indexed(99) is False
        assert await repository.get_indexed_ids([1, 4, 99, 4]) == {1, 4}


class TestIndexSync:
    async def test_update_replaces_indexed_text(self, repository, seeded):
        await repository.index_stories([make_item(2, "Vue Debugging", by="tester", score=200)])

        assert ids(await repository.search(SearchQuery(query="react"))) == []
        assert ids(await repository.search(SearchQuery(query="vue"))) == [2]

    async def test_delete_removes_from_index(self, repository, seeded, db_session):
        await db_session.execute(delete(Story).where(Story.id == 4))
        await db_session.commit()

        assert ids(await repository.search(SearchQuery(query="popular"))) == []
        remaining = (await db_session.execute(select(stories_search.c.rowid))).scalars().all()
        assert sorted(remaining) == [1, 2, 3]


class TestSearch:
    async def test_min_score_sorted_by_score(self, repository, seeded):
        query = SearchQuery(filters=SearchFilters(min_score=100), sort_by=SearchSortOrder.SCORE)

        result = await repository.search(query)

        assert ids(result) == [4, 2, 1]
        assert [story.score for story in result.items] == [500, 200, 150]
        assert result.total_count == 3

    async def test_has_url_false(self, repository, seeded):
        result = await repository.search(SearchQuery(filters=SearchFilters(has_url=False)))

        assert [story.title for story in result.items] == ["No URL Story"]

    async def test_has_url_true(self, repository, seeded):
        result = await repository.search(SearchQuery(filters=SearchFilters(has_url=True)))

        assert sorted(ids(result)) == [1, 2, 4]

    async def test_text_matches_title(self, repository, seeded):
        assert ids(await repository.search(SearchQuery(query="React"))) == [2]

    async def test_all_terms_must_match(self, repository, seeded):
        assert ids(await repository.search(SearchQuery(query="JS practices"))) == [1]
        assert ids(await repository.search(SearchQuery(query="JS testing"))) == []

    async def test_text_matches_author_and_domain(self, repository, seeded):
        assert ids(await repository.search(SearchQuery(query="tester"))) == [2]
        assert ids(await repository.search(SearchQuery(query="popular.com"))) == [4]

    async def test_operators_in_text_are_literal(self, repository, seeded):
        result = await repository.search(SearchQuery(query='React OR "NOT" *'))

        assert ids(result) == []

    async def test_exact_author_and_domain_filters(self, repository, seeded):
        by_author = await repository.search(SearchQuery(filters=SearchFilters(author="dev")))
        by_domain = await repository.search(SearchQuery(filters=SearchFilters(domain="react.dev")))

        assert ids(by_author) == [1]
        assert ids(by_domain) == [2]

    async def test_date_and_score_range(self, repository, seeded):
        filters = SearchFilters(
            from_date=BASE_TIME + timedelta(minutes=2),
            to_date=BASE_TIME + timedelta(minutes=3),
            max_score=300,
        )

        result = await repository.search(SearchQuery(filters=filters, sort_by=SearchSortOrder.OLDEST))

        assert ids(result) == [2, 3]

    @pytest.mark.parametrize(
        ("sort_by", "expected"),
        [
            (SearchSortOrder.RELEVANCE, [4, 2, 1, 3]),
            (SearchSortOrder.SCORE, [4, 2, 1, 3]),
            (SearchSortOrder.RECENT, [4, 3, 2, 1]),
            (SearchSortOrder.OLDEST, [1, 2, 3, 4]),
        ],
    )
    async def test_sort_orders_without_text(self, repository, seeded, sort_by, expected):
        assert ids(await repository.search(SearchQuery(sort_by=sort_by))) == expected

    async def test_sort_by_comments(self, repository):
        await repository.index_stories(
            [
                make_item(1, "Quiet", score=50, descendants=1),
                make_item(2, "Busy", score=10, descendants=40),
                make_item(3, "Busy too", score=20, descendants=40),
            ],
        )

        result = await repository.search(SearchQuery(sort_by=SearchSortOrder.COMMENTS))

        assert ids(result) == [3, 2, 1]

    async def test_relevance_with_text_uses_rank(self, repository):
        await repository.index_stories(
            [
                make_item(1, "Rust news", score=900),
                make_item(2, "Rust rust rust", score=1),
            ],
        )

        result = await repository.search(SearchQuery(query="rust"))

        assert sorted(ids(result)) == [1, 2]
        assert result.total_count == 2

    async def test_pagination_is_deterministic(self, repository):
        same_time = BASE_TIME
        await repository.index_stories(
            [make_item(story_id, f"Tied {story_id}", score=7, created_at=same_time) for story_id in range(1, 26)],
        )

        pages = [
            ids(await repository.search(SearchQuery(query="tied", page=page, page_size=10, sort_by=SearchSortOrder.SCORE)))
            for page in (1, 2, 3)
        ]

        assert pages[0] == list(range(25, 15, -1))
        assert pages[1] == list(range(15, 5, -1))
        assert pages[2] == list(range(5, 0, -1))

    async def test_page_beyond_results(self, repository, seeded):
        result = await repository.search(SearchQuery(page=5, page_size=10))

        assert result.items == []
        assert result.total_count == 4

    @pytest.mark.parametrize(
        "query",
        [
            SearchQuery(page=0),
            SearchQuery(page_size=0),
            SearchQuery(page_size=101),
            SearchQuery(query="x" * 201),
            SearchQuery(page=10**18, page_size=100),
            SearchQuery(filters=SearchFilters(min_score=10**20)),
            SearchQuery(filters=SearchFilters(max_score=-(10**20))),
        ],
    )
    async def test_validation_errors(self, repository, query):
        with pytest.raises(SearchValidationError):
            await repository.search(query)

    async def test_validation_error_is_a_value_error(self, repository):
        with pytest.raises(ValueError):
            await repository.search(SearchQuery(page=-1))

    async def test_largest_page_and_scores_are_accepted(self, repository, seeded):
        largest = 2**63 - 1
        filters = SearchFilters(min_score=-largest - 1, max_score=largest)

        far_page = await repository.search(SearchQuery(page=largest // 100, page_size=100))
        all_scores = await repository.search(SearchQuery(filters=filters))

        assert far_page.items == []
        assert far_page.total_count == 4
        assert ids(all_scores) == [4, 2, 1, 3]


class TestFallback:
    async def test_broken_index_falls_back_to_table_scan(self, repository, seeded, db_session):
        await db_session.execute(text("DROP TABLE stories_search"))
        await db_session.commit()

        by_text = await repository.search(SearchQuery(query="react"))
        by_filter = await repository.search(
            SearchQuery(filters=SearchFilters(min_score=100), sort_by=SearchSortOrder.SCORE),
        )
        no_url = await repository.search(SearchQuery(filters=SearchFilters(has_url=False)))

        assert ids(by_text) == [2]
        assert ids(by_filter) == [4, 2, 1]
        assert by_filter.total_count == 3
        assert ids(no_url) == [3]

    async def test_fallback_matches_substrings_case_insensitively(self, repository, seeded, db_session):
        await db_session.execute(text("DROP TABLE stories_search"))
        await db_session.commit()

        assert ids(await repository.search(SearchQuery(query="POPULAR.C"))) == [4]

    async def test_failing_fallback_returns_empty_page(self):
        session = MagicMock()
        session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("gone")))
        session.rollback = AsyncMock()

        result = await SearchRepository(session).search(SearchQuery(query="anything", page=2, page_size=5))

        assert result.items == []
        assert result.page == 2
        assert result.page_size == 5
        assert result.total_count is None

    async def test_failing_story_load_returns_empty_page(self):
        id_rows = MagicMock()
        id_rows.scalars.return_value.all.return_value = [2, 1]
        count_row = MagicMock()
        count_row.scalar_one.return_value = 2
        session = MagicMock()
        session.execute = AsyncMock(
            side_effect=[id_rows, count_row, OperationalError("SELECT", {}, Exception("disk I/O error"))],
        )
        session.rollback = AsyncMock()

        result = await SearchRepository(session).search(SearchQuery(query="react"))

        assert result.items == []
        assert result.total_count is None
        session.rollback.assert_awaited_once()


class TestSuggestions:
    async def test_prefix_suggestions(self, repository):
        await repository.index_stories(
            [
                make_item(1, "JavaScript Basics", by="jane", score=10, url="https://javadocs.io/x"),
                make_item(2, "Rust Basics", by="rob", score=20),
            ],
        )

        suggestions = await repository.get_suggestions("ja", 10)

        assert "JavaScript Basics" in suggestions
        assert "jane" in suggestions
        assert "javadocs.io" in suggestions
        assert "Rust Basics" not in suggestions

    async def test_short_input_yields_nothing(self, repository):
        await repository.index_stories([make_item(1, "JavaScript Basics")])

        assert await repository.get_suggestions("j", 10) == []
        assert await repository.get_suggestions("  j  ", 10) == []

    async def test_suggestions_are_distinct_and_limited(self, repository):
        await repository.index_stories(
            [make_item(story_id, "Python Tips", by=f"user{story_id}", score=story_id) for story_id in range(1, 6)],
        )

        suggestions = await repository.get_suggestions("pyth", 3)

        assert suggestions == ["Python Tips"]

    async def test_suggestion_failure_yields_nothing(self, repository, seeded, db_session):
        await db_session.execute(text("DROP TABLE stories_search"))
        await db_session.commit()

        assert await repository.get_suggestions("react", 10) == []


class TestRebuildIndex:
    async def test_rebuild_restores_cleared_index(self, repository, seeded, db_session):
        await db_session.execute(text("DELETE FROM stories_search"))
        await db_session.commit()
        assert ids(await repository.search(SearchQuery(query="react"))) == []

        indexed = await repository.rebuild_index()

        assert indexed == 4
        assert ids(await repository.search(SearchQuery(query="react"))) == [2]

    async def test_rebuild_failure_raises(self, repository, seeded, db_session):
        await db_session.execute(text("DROP TABLE stories_search"))
        await db_session.commit()

        with pytest.raises(OperationalError):
            await repository.rebuild_index()


class TestStatistics:
    async def test_statistics(self, repository, seeded, db_session):
        runs = IndexingRunService(db_session)
        run = await runs.create_run("bulk")
        await runs.complete_run(run, items_fetched=4, stats={"new": 4, "updated": 0})

        stats = await repository.get_statistics()

        assert stats.total_indexed_stories == 4
        assert stats.last_indexed_at is not None
        assert stats.oldest_story_date == BASE_TIME + timedelta(minutes=1)
        assert stats.newest_story_date == BASE_TIME + timedelta(minutes=4)
        assert set(stats.popular_domains) == {"example.com", "react.dev", "popular.com"}
        assert set(stats.popular_authors) == {"dev", "tester", "dev2", "pop"}
        assert stats.last_run is not None
        assert stats.last_run.kind == "bulk"
        assert stats.last_run.items_new == 4

    async def test_statistics_on_empty_store(self, repository):
        stats = await repository.get_statistics()

        assert stats.total_indexed_stories == 0
        assert stats.last_indexed_at is None
        assert stats.popular_domains == []
        assert stats.last_run is None
