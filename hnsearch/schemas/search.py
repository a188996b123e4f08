from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SearchSortOrder(str, Enum):
    RELEVANCE = "relevance"
    SCORE = "score"
    RECENT = "recent"
    OLDEST = "oldest"
    COMMENTS = "comments"


class SearchFilters(BaseModel):
    """Optional structured filters applied alongside the free-text query."""

    from_date: datetime | None = Field(default=None, description="Only stories created at or after this time")
    to_date: datetime | None = Field(default=None, description="Only stories created at or before this time")
    min_score: int | None = Field(default=None, description="Minimum score (inclusive)")
    max_score: int | None = Field(default=None, description="Maximum score (inclusive)")
    author: str | None = Field(default=None, description="Exact author handle")
    domain: str | None = Field(default=None, description="Exact domain, without 'www.'")
    has_url: bool | None = Field(default=None, description="Whether the story links to an external URL")

    @property
    def is_empty(self) -> bool:
        return all(value is None or value == "" for value in self.model_dump().values())


class SearchQuery(BaseModel):
    """A structured search request. Bounds are checked by the search repository."""

    query: str = Field(default="", description="Free text matched against title, author and domain")
    filters: SearchFilters | None = None
    page: int = Field(default=1, description="Page number (1-based)")
    page_size: int = Field(default=20, description="Items per page (1-100)")
    sort_by: SearchSortOrder = Field(default=SearchSortOrder.RELEVANCE, description="Result ordering")

    @property
    def text(self) -> str:
        return self.query.strip()

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class IndexingRunSummary(BaseModel):
    """Summary of an indexing pass."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    status: str
    started_at: datetime
    completed_at: datetime | None
    items_fetched: int
    items_new: int
    items_updated: int
    duration_seconds: float | None
    error_notes: str | None


class SearchStatistics(BaseModel):
    """Aggregate figures about the local search index."""

    total_indexed_stories: int = Field(description="Number of stories in the index")
    last_indexed_at: datetime | None = Field(default=None, description="Most recent indexer write")
    oldest_story_date: datetime | None = Field(default=None, description="Creation time of the oldest story")
    newest_story_date: datetime | None = Field(default=None, description="Creation time of the newest story")
    popular_domains: list[str] = Field(default_factory=list, description="Domains with the most stories")
    popular_authors: list[str] = Field(default_factory=list, description="Authors with the most stories")
    last_run: IndexingRunSummary | None = Field(default=None, description="Most recent indexing pass")


class RebuildIndexResponse(BaseModel):
    message: str
    indexed: int
