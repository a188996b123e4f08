from celery import Celery

from hnsearch.config import settings

# Create Celery app
celery_app = Celery(
    "hnsearch",
    broker=settings.CELERY_BROKER_URL or settings.REDIS_URL,
    backend=settings.CELERY_RESULT_BACKEND or settings.REDIS_URL,
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_track_started=True,
)

# Periodic retention janitor
celery_app.conf.beat_schedule = {
    "maintenance-cleanup": {
        "task": "maintenance.cleanup",
        "schedule": settings.MAINTENANCE_INTERVAL_HOURS * 3600,
    },
}

# Import tasks to ensure they are registered with Celery
# This import must be after the celery_app is created to avoid circular imports
# pylint: disable=wrong-import-position
from hnsearch.workers import tasks  # noqa: E402, F401
