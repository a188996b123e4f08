#!/usr/bin/env python3
"""
One-shot indexing script.

Runs a single indexing or upkeep pass against the configured database without
starting the API:

    python scripts/index_stories.py seed        # bulk seed the newest stories
    python scripts/index_stories.py update      # index stories not stored yet
    python scripts/index_stories.py rebuild     # repopulate the full-text index
    python scripts/index_stories.py maintenance # retention cleanup and VACUUM
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from hnsearch.config import settings
from hnsearch.core.cache import CacheService, NullCacheService
from hnsearch.core.extractors.base import StorySource
from hnsearch.core.extractors.hackernews import HackerNewsClient
from hnsearch.core.services.indexing import StoryIndexer
from hnsearch.core.services.maintenance import DatabaseMaintenanceService
from hnsearch.core.services.search import SearchRepository
from hnsearch.database import build_engine, init_db
from hnsearch.logging_config import setup_logging

ACTIONS = ("seed", "update", "rebuild", "maintenance")


async def run_action(
    action: str,
    engine: AsyncEngine,
    client: StorySource,
    cache: CacheService,
    bulk_size: int | None = None,
) -> dict[str, Any] | None:
    """Run ``action`` once and return its outcome."""
    session_factory = async_sessionmaker(engine, autoflush=False, expire_on_commit=False)

    if action in ("seed", "update"):
        indexer = StoryIndexer(session_factory, client, cache, bulk_size=bulk_size)
        if action == "seed":
            return await indexer.bulk_seed()
        return await indexer.incremental_update()

    if action == "rebuild":
        async with session_factory() as session:
            return {"indexed": await SearchRepository(session).rebuild_index()}

    if action == "maintenance":
        report = await DatabaseMaintenanceService(engine).perform_maintenance()
        return report.model_dump(include={"deleted", "vacuumed"})

    raise ValueError(f"Unknown action: {action}")


async def main():
    parser = argparse.ArgumentParser(description="Run a single story indexing pass.")
    parser.add_argument("action", choices=ACTIONS, help="Pass to run.")
    parser.add_argument("--bulk-size", type=int, default=None, help="Stories to seed (seed only).")
    args = parser.parse_args()

    setup_logging()
    logger.info(f"Running '{args.action}' against {settings.DATABASE_URL}")

    engine = build_engine(settings.DATABASE_URL)
    client = HackerNewsClient()
    try:
        await init_db(engine)
        result = await run_action(args.action, engine, client, NullCacheService(), bulk_size=args.bulk_size)
        logger.info(f"'{args.action}' finished: {result}")
        sys.exit(0)
    except Exception as e:
        logger.error(f"'{args.action}' failed: {e}")
        sys.exit(1)
    finally:
        await client.close()
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
