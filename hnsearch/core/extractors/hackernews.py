from typing import Any, cast

from loguru import logger
from pydantic import ValidationError

from hnsearch.config import settings
from hnsearch.core.exceptions import RemoteSourceError
from hnsearch.core.extractors.base import BaseExtractor, ExtractorConfig
from hnsearch.core.http_client import RateLimitedClient
from hnsearch.schemas.stories import HackerNewsItem


class HackerNewsClient(BaseExtractor):
    """Client for the public Hacker News Firebase API."""

    def __init__(self, config: ExtractorConfig | None = None, http_client: RateLimitedClient | None = None) -> None:
        if config is None:
            config = ExtractorConfig(
                base_url=settings.HN_API_BASE_URL,
                rate_limit=settings.HN_RATE_LIMIT,
                config={"client": {"retries": settings.HTTP_RETRIES, "timeout": settings.HTTP_TIMEOUT}},
            )
        super().__init__(config)
        self.http_client = http_client or self.get_http_client()
        self.ids_endpoint = self.extractor_config.get("ids_endpoint", "/newstories.json")
        self.detail_endpoint = self.extractor_config.get("detail_endpoint", "/item/{id}.json")

    async def get_newest_story_ids(self) -> list[int]:
        url = self.base_url + self.ids_endpoint
        logger.debug(f"Fetching newest story ids from {url}")

        data = await self.http_client.get_json(url)
        if data is None:
            raise RemoteSourceError("Failed to fetch newest story ids", url=url)

        if not isinstance(data, list):
            raise RemoteSourceError(f"Expected a list of story ids, got {type(data).__name__}", url=url)

        story_list = cast("list[Any]", data)
        return [int(item_id) for item_id in story_list if isinstance(item_id, int | str) and str(item_id).isdigit()]

    async def get_story(self, story_id: int) -> HackerNewsItem | None:
        url = self.base_url + self.detail_endpoint.format(id=story_id)

        response = await self.http_client.get_with_response(url)
        if response is None:
            raise RemoteSourceError(f"Failed to fetch item {story_id}", url=url)

        try:
            data = response.json()
        except ValueError as e:
            raise RemoteSourceError(f"Invalid JSON for item {story_id}: {e}", url=url) from e

        # The API answers `null` for unknown ids
        if not isinstance(data, dict):
            return None

        return self._parse_item(data)

    def _parse_item(self, item_data: dict[str, Any]) -> HackerNewsItem | None:
        if item_data.get("deleted") or item_data.get("dead"):
            return None

        if item_data.get("type", "story") != "story":
            return None

        try:
            return HackerNewsItem.model_validate(item_data)
        except ValidationError as e:
            logger.warning(f"Skipping malformed item {item_data.get('id', 'unknown')}: {e}")
            return None

    async def health_check(self) -> bool:
        try:
            await self.get_newest_story_ids()
            return True
        except RemoteSourceError as e:
            logger.error(f"Hacker News health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.http_client.close()

    async def __aenter__(self) -> "HackerNewsClient":
        return self
