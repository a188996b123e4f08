from datetime import datetime
from typing import Any, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar('T')


class HealthCheckResult(BaseModel):
    """Schema for individual component health check result."""

    status: Literal["healthy", "unhealthy"] = Field(description="Status of the component")
    details: dict[str, Any] | None = Field(default=None, description="Additional details about the component health")
    error: str | None = Field(default=None, description="Error message if the component is unhealthy")


class HealthResponse(BaseModel):
    """Schema for the health check response."""

    status: Literal["healthy", "degraded", "unhealthy"] = Field(description="Overall status of the service")
    timestamp: datetime = Field(description="Time when the health check was performed")
    version: str | None = Field(default=None, description="Service version")
    checks: dict[str, HealthCheckResult] = Field(description="Health check results for individual components")


class PagedResult(BaseModel, Generic[T]):
    """Generic schema for page-number based results."""

    items: List[T] = Field(default_factory=list, description="Items on the current page")
    page: int = Field(description="Current page number (1-based)")
    page_size: int = Field(description="Requested number of items per page")
    total_count: Optional[int] = Field(
        default=None,
        description="Total number of matching items when it could be determined",
    )
