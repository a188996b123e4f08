from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./search.db"
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None
    LOG_LEVEL: str = "INFO"
    API_V1_STR: str = "/api/v1"
    CORS_ORIGINS: List[str] = ["http://localhost:4200", "http://localhost:3000"]

    # Remote source
    HN_API_BASE_URL: str = "https://hacker-news.firebaseio.com/v0"
    HN_RATE_LIMIT: int = 0
    HTTP_TIMEOUT: float = 10.0
    HTTP_RETRIES: int = 3

    # Indexing scheduler
    INDEXING_ENABLED: bool = True
    INDEXING_INTERVAL_SECONDS: float = 900.0
    INITIAL_BULK_SIZE: int = 5000
    BULK_PAGE_SIZE: int = 500
    INCREMENTAL_CHECK_SIZE: int = 20
    INDEXING_LOCK_TIMEOUT_SECONDS: float = 1.0
    BULK_PAGE_DELAY_SECONDS: float = 0.1

    # Cache
    STORY_IDS_CACHE_TTL_SECONDS: int = 60
    STORY_CACHE_TTL_SECONDS: int = 5400

    # Retention
    MAX_DATABASE_SIZE_BYTES: int = 800_000_000
    RETENTION_DAYS: int = 30
    AGGRESSIVE_RETENTION_DAYS: int = 7
    CLEANUP_BATCH_SIZE: int = 1000
    MAINTENANCE_INTERVAL_HOURS: float = 6.0

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
