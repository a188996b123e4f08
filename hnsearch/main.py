from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from hnsearch.api.deps import close_hackernews_client, get_hackernews_client
from hnsearch.api.v1 import health, search, stories
from hnsearch.config import settings
from hnsearch.core.cache import RedisCacheService
from hnsearch.core.redis import RedisClient
from hnsearch.core.services.indexing import StoryIndexer
from hnsearch.database import SessionLocal, init_db
from hnsearch.logging_config import setup_logging

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await init_db()

    indexer: StoryIndexer | None = None
    if settings.INDEXING_ENABLED:
        indexer = StoryIndexer(
            SessionLocal,
            get_hackernews_client(),
            RedisCacheService(await RedisClient.get_redis()),
        )
        indexer.start()
    else:
        logger.info("Background indexing is disabled")
    app.state.indexer = indexer

    try:
        yield
    finally:
        if indexer is not None:
            await indexer.stop()
        await close_hackernews_client()
        await RedisClient.close()


app = FastAPI(
    title="HN Search",
    description="Full-text search over recent Hacker News stories",
    version="0.1.0",
    lifespan=lifespan,
)

# Set up CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix=settings.API_V1_STR, tags=["health"])
app.include_router(stories.router, prefix=f"{settings.API_V1_STR}/stories", tags=["stories"])
app.include_router(search.router, prefix=f"{settings.API_V1_STR}/search", tags=["search"])
