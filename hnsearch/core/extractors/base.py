from abc import ABC, abstractmethod
from typing import Any, Protocol

from pydantic import BaseModel, Field

from hnsearch.core.http_client import RateLimitedClient
from hnsearch.schemas.stories import HackerNewsItem


class ExtractorConfig(BaseModel):
    """Configuration for extractors."""

    base_url: str
    rate_limit: int = 0
    config: dict[str, Any] = Field(default_factory=dict)


class BaseExtractor(ABC):
    """Abstract base class for remote story sources."""

    def __init__(self, config: ExtractorConfig):
        self.config = config
        self.base_url = config.base_url.rstrip("/")
        self.rate_limit = config.rate_limit
        self.extractor_config = config.config

    def get_http_client(self) -> RateLimitedClient:
        """
        Create HTTP client with configuration from the extractor config.

        Returns:
            Configured RateLimitedClient instance
        """
        client_config = self.extractor_config.get("client", {})
        return RateLimitedClient(
            rate_limit=self.rate_limit,
            retries=client_config.get("retries", 3),
            semaphore_size=client_config.get("semaphore_size", 10),
            timeout=client_config.get("timeout", 10.0),
            backoff_base=client_config.get("backoff_base", 1.0),
        )

    async def close(self):
        """Close any resources used by the extractor."""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @abstractmethod
    async def get_newest_story_ids(self) -> list[int]:
        """
        Fetch the ids of the newest stories, newest first.

        Raises:
            RemoteSourceError: if the source cannot be reached
        """
        pass

    @abstractmethod
    async def get_story(self, story_id: int) -> HackerNewsItem | None:
        """
        Fetch a single story.

        Returns:
            The story, or None if the item does not exist or is not a live story

        Raises:
            RemoteSourceError: if the source cannot be reached
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the extractor can connect to the source.

        Returns:
            True if the source is accessible, False otherwise
        """
        pass


class StorySource(Protocol):
    """Protocol for anything that can serve Hacker News stories."""

    async def get_newest_story_ids(self) -> list[int]: ...

    async def get_story(self, story_id: int) -> HackerNewsItem | None: ...
