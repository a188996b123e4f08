"""Pydantic schemas for API request/response validation."""

from hnsearch.schemas.common import (
    HealthCheckResult,
    HealthResponse,
    PagedResult,
)
from hnsearch.schemas.search import (
    IndexingRunSummary,
    SearchFilters,
    SearchQuery,
    SearchSortOrder,
    SearchStatistics,
)
from hnsearch.schemas.stories import HackerNewsItem, StoryRecord

__all__ = [
    # Common schemas
    "HealthCheckResult",
    "HealthResponse",
    "PagedResult",
    # Story schemas
    "HackerNewsItem",
    "StoryRecord",
    # Search schemas
    "IndexingRunSummary",
    "SearchFilters",
    "SearchQuery",
    "SearchSortOrder",
    "SearchStatistics",
]
