from sqlalchemy import event
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from hnsearch.config import settings
from hnsearch.models.base import Base


def _enable_sqlite_wal(dbapi_connection, connection_record) -> None:
    """Let readers proceed while the indexer holds a write transaction."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    url = make_url(database_url)
    new_engine = create_async_engine(database_url, pool_pre_ping=True)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        event.listen(new_engine.sync_engine, "connect", _enable_sqlite_wal)
    return new_engine


engine = build_engine(settings.DATABASE_URL)
SessionLocal = async_sessionmaker(
    engine,
    autoflush=False,
    expire_on_commit=False,
)


async def init_db(target_engine: AsyncEngine | None = None) -> None:
    """Create the story tables, the full-text index and its sync triggers."""
    # Register every model on the metadata before create_all
    import hnsearch.models  # noqa: F401

    async with (target_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
