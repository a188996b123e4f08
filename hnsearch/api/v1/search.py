from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status as http_status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from hnsearch.api.deps import get_search_repository
from hnsearch.core.exceptions import SearchValidationError
from hnsearch.core.services.search import MAX_SUGGESTIONS, SearchRepository
from hnsearch.schemas.common import PagedResult
from hnsearch.schemas.search import (
    RebuildIndexResponse,
    SearchFilters,
    SearchQuery,
    SearchSortOrder,
    SearchStatistics,
)
from hnsearch.schemas.stories import HackerNewsItem

router = APIRouter()

DEFAULT_PAGE_SIZE = 20
DEFAULT_SUGGESTIONS = 10


@router.get(
    "",
    response_model=PagedResult[HackerNewsItem],
    summary="Search indexed stories",
    description="Full-text search over story titles, authors and domains with optional filters. "
    "Every term must match. Sort by relevance, score, recent, oldest or comments.",
    responses={400: {"description": "Invalid search request"}},
)
async def search_stories(
    q: str = Query("", description="Free text; every term must match", examples=["rust compiler"]),
    page: int = Query(1, description="Page number (1-based)", examples=[1]),
    page_size: int = Query(DEFAULT_PAGE_SIZE, description="Results per page (1-100)", examples=[20]),
    sort_by: str = Query(
        SearchSortOrder.RELEVANCE.value,
        description="One of relevance, score, recent, oldest, comments",
        examples=["score"],
    ),
    from_date: datetime | None = Query(None, description="Stories created at or after (ISO 8601)"),
    to_date: datetime | None = Query(None, description="Stories created at or before (ISO 8601)"),
    min_score: int | None = Query(None, description="Minimum score (inclusive)"),
    max_score: int | None = Query(None, description="Maximum score (inclusive)"),
    author: str | None = Query(None, description="Exact author handle", examples=["pg"]),
    domain: str | None = Query(None, description="Exact domain", examples=["github.com"]),
    has_url: bool | None = Query(None, description="Only link posts (true) or only text posts (false)"),
    repository: SearchRepository = Depends(get_search_repository),
) -> PagedResult[HackerNewsItem]:
    if page < 1:
        page = 1
    if page_size < 1:
        page_size = DEFAULT_PAGE_SIZE

    try:
        sort_order = SearchSortOrder(sort_by.lower())
    except ValueError as e:
        raise HTTPException(
            status_code=http_status.HTTP_400_BAD_REQUEST,
            detail=f"sort_by must be one of {', '.join(order.value for order in SearchSortOrder)}",
        ) from e

    filters = SearchFilters(
        from_date=from_date,
        to_date=to_date,
        min_score=min_score,
        max_score=max_score,
        author=author or None,
        domain=domain or None,
        has_url=has_url,
    )
    query = SearchQuery(
        query=q,
        filters=None if filters.is_empty else filters,
        page=page,
        page_size=page_size,
        sort_by=sort_order,
    )

    try:
        return await repository.search(query)
    except SearchValidationError as e:
        raise HTTPException(status_code=http_status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Search for '{q}' failed: {e}")
        raise HTTPException(status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Search failed") from e


@router.get(
    "/suggestions",
    response_model=list[str],
    summary="Autocomplete suggestions",
    description="Titles, authors and domains containing a word that starts with the given text. "
    "Fewer than two characters yields no suggestions.",
)
async def get_suggestions(
    q: str = Query("", description="Partial text", examples=["pyth"]),
    limit: int = Query(DEFAULT_SUGGESTIONS, description=f"Maximum suggestions (1-{MAX_SUGGESTIONS})"),
    repository: SearchRepository = Depends(get_search_repository),
) -> list[str]:
    limit = max(1, min(limit, MAX_SUGGESTIONS))
    return await repository.get_suggestions(q, limit)


@router.post(
    "/rebuild-index",
    response_model=RebuildIndexResponse,
    summary="Rebuild the full-text index",
    description="Repopulate the full-text index from the stored stories in one transaction.",
)
async def rebuild_index(repository: SearchRepository = Depends(get_search_repository)) -> RebuildIndexResponse:
    try:
        indexed = await repository.rebuild_index()
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to rebuild search index",
        ) from e

    return RebuildIndexResponse(message="Search index rebuilt", indexed=indexed)


@router.get(
    "/stats",
    response_model=SearchStatistics,
    summary="Search index statistics",
)
async def get_search_stats(repository: SearchRepository = Depends(get_search_repository)) -> SearchStatistics:
    try:
        return await repository.get_statistics()
    except SQLAlchemyError as e:
        logger.error(f"Loading search statistics failed: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load search statistics",
        ) from e
