from datetime import UTC

from loguru import logger

from hnsearch.core.normalizers.base import BaseNormalizer, NormalizationError
from hnsearch.models.stories import Story
from hnsearch.schemas.stories import HackerNewsItem, StoryRecord

TITLE_MAX_LENGTH = 500
AUTHOR_MAX_LENGTH = 100
URL_MAX_LENGTH = 1000
DOMAIN_MAX_LENGTH = 200


class StoryNormalizer(BaseNormalizer[HackerNewsItem, StoryRecord]):
    """Maps API items to ``stories`` rows and back."""

    def normalize(self, raw_item: HackerNewsItem) -> StoryRecord:
        title = self._clean_text(raw_item.title)
        if not title:
            raise NormalizationError("Title is empty", raw_item.id)

        author = self._clean_text(raw_item.by) or ""

        url = raw_item.url.strip() if raw_item.url else None
        if url and len(url) > URL_MAX_LENGTH:
            logger.warning(f"Dropping over-long URL for story {raw_item.id}")
            url = None

        domain = raw_item.domain if url else None
        if domain and len(domain) > DOMAIN_MAX_LENGTH:
            domain = None

        return StoryRecord(
            id=raw_item.id,
            title=self._truncate(title, TITLE_MAX_LENGTH),
            author=self._truncate(author, AUTHOR_MAX_LENGTH),
            url=url or None,
            score=max(raw_item.score, 0),
            created_at=raw_item.created_at,
            comment_count=raw_item.comment_count,
            domain=domain,
        )

    def to_item(self, story: Story) -> HackerNewsItem:
        """Rebuild the API shape from a stored row."""
        created_at = story.created_at
        if created_at.tzinfo is None:
            # SQLite hands back naive datetimes
            created_at = created_at.replace(tzinfo=UTC)

        return HackerNewsItem(
            id=story.id,
            title=story.title,
            url=story.url,
            score=story.score,
            by=story.author,
            time=int(created_at.timestamp()),
            type="story",
            descendants=story.comment_count,
        )
