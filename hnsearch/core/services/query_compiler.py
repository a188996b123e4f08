"""
Translation of a ``SearchQuery`` into SQL.

Two renditions are produced from the same request: the primary one runs against
the ``stories_search`` FTS5 table, the fallback one runs against ``stories`` with
plain substring matching. Both select story ids only, apply the same filters and
order the same way, with a final id tiebreaker so that pages never overlap.

Free text never reaches the SQL text: the MATCH expression and every filter
value are bound parameters.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, func, or_, select

from hnsearch.models.search_index import search_document, search_rank, stories_search
from hnsearch.models.stories import Story
from hnsearch.schemas.search import SearchFilters, SearchQuery, SearchSortOrder


def quote_term(term: str) -> str:
    """Quote a single term as an FTS5 string so operators in it are literal."""
    escaped = term.replace("\\", "\\\\").replace('"', '""')
    return f'"{escaped}"'


def build_match_expression(text: str) -> str | None:
    """All terms must match. None if the text has no terms."""
    terms = text.split()
    if not terms:
        return None
    return " ".join(quote_term(term) for term in terms)


def build_prefix_expression(partial: str) -> str | None:
    partial = partial.strip()
    if not partial:
        return None
    return f"{quote_term(partial)}*"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class SearchQueryCompiler:
    """Builds the FTS and fallback statements for one ``SearchQuery``."""

    def __init__(self, query: SearchQuery) -> None:
        self.query = query
        self.filters = query.filters or SearchFilters()
        self.text = query.text
        self.match_expression = build_match_expression(self.text)

    # FTS rendition

    def _fts_predicates(self) -> list[ColumnElement[bool]]:
        c = stories_search.c
        predicates: list[ColumnElement[bool]] = []
        if self.match_expression is not None:
            predicates.append(search_document.match(self.match_expression))
        predicates.extend(self._filter_predicates(c.created_at, c.score, c.author, c.domain))

        if self.filters.has_url is not None:
            predicates.append(c.has_url == (1 if self.filters.has_url else 0))
        return predicates

    def _fts_ordering(self) -> list[Any]:
        c = stories_search.c
        sort_by = self.query.sort_by

        if sort_by is SearchSortOrder.RELEVANCE and self.match_expression is not None:
            ordering: list[Any] = [search_rank]
        else:
            ordering = self._ordering(c.score, c.created_at, c.comment_count)
        return [*ordering, c.rowid.desc()]

    def fts_ids_statement(self) -> Select[Any]:
        return (
            select(stories_search.c.rowid)
            .where(*self._fts_predicates())
            .order_by(*self._fts_ordering())
            .limit(self.query.page_size)
            .offset(self.query.offset)
        )

    def fts_count_statement(self) -> Select[Any]:
        return select(func.count()).select_from(stories_search).where(*self._fts_predicates())

    # Relational fallback

    def _fallback_predicates(self) -> list[ColumnElement[bool]]:
        predicates: list[ColumnElement[bool]] = []
        if self.text:
            predicates.append(
                or_(
                    Story.title.icontains(self.text, autoescape=True),
                    Story.author.icontains(self.text, autoescape=True),
                    Story.domain.icontains(self.text, autoescape=True),
                ),
            )
        predicates.extend(self._filter_predicates(Story.created_at, Story.score, Story.author, Story.domain))

        if self.filters.has_url is True:
            predicates.append(and_(Story.url.is_not(None), Story.url != ""))
        elif self.filters.has_url is False:
            predicates.append(or_(Story.url.is_(None), Story.url == ""))
        return predicates

    def fallback_ids_statement(self) -> Select[Any]:
        ordering = self._ordering(Story.score, Story.created_at, Story.comment_count)
        return (
            select(Story.id)
            .where(*self._fallback_predicates())
            .order_by(*ordering, Story.id.desc())
            .limit(self.query.page_size)
            .offset(self.query.offset)
        )

    def fallback_count_statement(self) -> Select[Any]:
        return select(func.count()).select_from(Story).where(*self._fallback_predicates())

    # Shared

    def _filter_predicates(self, created_at, score, author, domain) -> list[ColumnElement[bool]]:
        filters = self.filters
        predicates: list[ColumnElement[bool]] = []
        if filters.from_date is not None:
            predicates.append(created_at >= _as_utc(filters.from_date))
        if filters.to_date is not None:
            predicates.append(created_at <= _as_utc(filters.to_date))
        if filters.min_score is not None:
            predicates.append(score >= filters.min_score)
        if filters.max_score is not None:
            predicates.append(score <= filters.max_score)
        if filters.author:
            predicates.append(author == filters.author)
        if filters.domain:
            predicates.append(domain == filters.domain)
        return predicates

    def _ordering(self, score, created_at, comment_count) -> list[Any]:
        match self.query.sort_by:
            case SearchSortOrder.RECENT:
                return [created_at.desc()]
            case SearchSortOrder.OLDEST:
                return [created_at.asc()]
            case SearchSortOrder.COMMENTS:
                return [comment_count.desc(), score.desc()]
            case _:
                return [score.desc(), created_at.desc()]
