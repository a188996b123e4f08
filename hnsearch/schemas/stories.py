from datetime import UTC, datetime
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, computed_field


def extract_domain(url: str | None) -> str | None:
    """Host portion of ``url`` without a leading ``www.``; None if absent or unparsable."""
    if not url:
        return None

    try:
        host = urlsplit(url.strip()).hostname
    except ValueError:
        return None

    if not host:
        return None

    return host.removeprefix("www.")


class HackerNewsItem(BaseModel):
    """A story as returned by the Hacker News API and served by this service."""

    id: int = Field(description="Hacker News item id")
    title: str = Field(default="", description="Story title")
    url: str | None = Field(default=None, description="External URL, absent for Ask/Show HN text posts")
    score: int = Field(default=0, description="Story points")
    by: str = Field(default="", description="Author handle")
    time: int = Field(default=0, description="Creation time in Unix epoch seconds")
    type: str = Field(default="story", description="Hacker News item type")
    kids: list[int] | None = Field(default=None, description="Ids of direct child comments")
    descendants: int | None = Field(default=None, description="Total comment count")

    @computed_field
    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.time, tz=UTC)

    @computed_field
    @property
    def has_url(self) -> bool:
        return bool(self.url)

    @computed_field
    @property
    def comment_count(self) -> int:
        return self.descendants or 0

    @computed_field
    @property
    def domain(self) -> str | None:
        return extract_domain(self.url)

    @computed_field
    @property
    def hacker_news_url(self) -> str:
        return f"https://news.ycombinator.com/item?id={self.id}"


class StoryRecord(BaseModel):
    """Column values for one row of the ``stories`` table."""

    id: int
    title: str = Field(max_length=500)
    author: str = Field(max_length=100)
    url: str | None = Field(default=None, max_length=1000)
    score: int = 0
    created_at: datetime
    comment_count: int = 0
    domain: str | None = Field(default=None, max_length=200)
