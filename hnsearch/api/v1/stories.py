from fastapi import APIRouter, Depends, HTTPException, Path, Query
from fastapi import status as http_status
from loguru import logger

from hnsearch.api.deps import get_story_service
from hnsearch.core.exceptions import RemoteSourceError
from hnsearch.core.services.stories import StoryService
from hnsearch.schemas.common import PagedResult
from hnsearch.schemas.stories import HackerNewsItem

router = APIRouter()

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 1000


@router.get(
    "",
    response_model=PagedResult[HackerNewsItem],
    summary="List the newest stories",
    description="Page through the newest Hacker News stories. An out-of-range page falls back to 1 "
    f"and an out-of-range page size falls back to {DEFAULT_PAGE_SIZE}.",
)
async def list_stories(
    page: int = Query(1, description="Page number (1-based)", examples=[1]),
    page_size: int = Query(
        DEFAULT_PAGE_SIZE,
        description=f"Stories per page (1-{MAX_PAGE_SIZE})",
        examples=[DEFAULT_PAGE_SIZE],
    ),
    story_service: StoryService = Depends(get_story_service),
) -> PagedResult[HackerNewsItem]:
    if page < 1:
        page = 1
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        page_size = DEFAULT_PAGE_SIZE

    try:
        return await story_service.get_stories(page, page_size)
    except RemoteSourceError as e:
        logger.error(f"Listing stories failed: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Hacker News is unavailable",
        ) from e


@router.get(
    "/{story_id}",
    response_model=HackerNewsItem,
    summary="Get a story by id",
    responses={400: {"description": "Invalid story id"}, 404: {"description": "Story not found"}},
)
async def get_story(
    story_id: int = Path(description="Hacker News item id", examples=[8863]),
    story_service: StoryService = Depends(get_story_service),
) -> HackerNewsItem:
    if story_id <= 0:
        raise HTTPException(status_code=http_status.HTTP_400_BAD_REQUEST, detail="Story id must be positive")

    try:
        story = await story_service.get_story(story_id)
    except RemoteSourceError as e:
        logger.error(f"Fetching story {story_id} failed: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Hacker News is unavailable",
        ) from e

    if story is None:
        raise HTTPException(status_code=http_status.HTTP_404_NOT_FOUND, detail=f"Story {story_id} not found")
    return story
