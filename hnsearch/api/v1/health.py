from datetime import UTC, datetime
from typing import Literal

import redis.asyncio as redis
from fastapi import APIRouter, Depends, HTTPException
from fastapi import status as http_status
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hnsearch.api.deps import get_db, get_maintenance_service
from hnsearch.core.health_checks import RedisHealthChecker, SQLiteHealthChecker
from hnsearch.core.redis import get_redis_client
from hnsearch.core.services.maintenance import DatabaseMaintenanceService
from hnsearch.schemas.common import HealthCheckResult, HealthResponse
from hnsearch.schemas.maintenance import CleanupResponse, DatabaseHealthResponse, DatabaseStats

router = APIRouter()

VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse, status_code=200)
async def health_check(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis_client),
) -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks the health of all system components:
    - API (always healthy if this endpoint is responding)
    - Database connection
    - Redis cache connection

    A Redis outage only degrades the service since every cache miss falls
    through to the store. A database outage answers 503.
    """
    _, db_healthy = await SQLiteHealthChecker().check(db)
    db_result = HealthCheckResult(
        status="healthy" if db_healthy else "unhealthy",
        details={"connected": db_healthy},
        error=None if db_healthy else "Database connection failed",
    )

    _, redis_healthy = await RedisHealthChecker(redis_client).check()
    redis_result = HealthCheckResult(
        status="healthy" if redis_healthy else "unhealthy",
        details={"connected": redis_healthy},
        error=None if redis_healthy else "Redis connection failed",
    )

    checks: dict[str, HealthCheckResult] = {
        "api": HealthCheckResult(status="healthy"),
        "database": db_result,
        "redis": redis_result,
    }

    if not db_healthy:
        raise HTTPException(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is unhealthy",
        )

    status: Literal["healthy", "degraded", "unhealthy"]
    status = "healthy" if all(check.status == "healthy" for check in checks.values()) else "degraded"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(UTC),
        version=VERSION,
        checks=checks,
    )


def _database_status(stats: DatabaseStats) -> str:
    if stats.is_over_limit:
        return "critical"
    if stats.is_near_limit:
        return "warning"
    return "healthy"


@router.get("/health/database", response_model=DatabaseHealthResponse)
async def database_health(
    maintenance: DatabaseMaintenanceService = Depends(get_maintenance_service),
) -> DatabaseHealthResponse:
    """Store size against its budget, plus the age range of indexed stories."""
    try:
        stats = await maintenance.get_stats()
    except SQLAlchemyError as e:
        logger.error(f"Reading database statistics failed: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database statistics unavailable",
        ) from e

    return DatabaseHealthResponse(status=_database_status(stats), database=stats, timestamp=datetime.now(UTC))


@router.post("/health/database/cleanup", response_model=CleanupResponse)
async def database_cleanup(
    maintenance: DatabaseMaintenanceService = Depends(get_maintenance_service),
) -> CleanupResponse:
    """Run the retention janitor now."""
    try:
        report = await maintenance.perform_maintenance()
    except SQLAlchemyError as e:
        logger.error(f"Database maintenance failed: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database maintenance failed",
        ) from e

    return CleanupResponse(
        status="completed",
        deleted=report.deleted,
        vacuumed=report.vacuumed,
        before=report.before,
        after=report.after,
        timestamp=datetime.now(UTC),
    )
