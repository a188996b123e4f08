from datetime import datetime

from pydantic import BaseModel, Field, computed_field


class DatabaseStats(BaseModel):
    """Size and age figures used by the retention janitor."""

    size_bytes: int = Field(description="Allocated database size")
    used_bytes: int = Field(description="Database size excluding free pages")
    max_size_bytes: int = Field(description="Configured size budget")
    story_count: int
    oldest_indexed_at: datetime | None = None
    newest_indexed_at: datetime | None = None
    should_cleanup_old_data: bool = False

    @computed_field
    @property
    def size_mb(self) -> float:
        return round(self.size_bytes / 1_000_000, 2)

    @computed_field
    @property
    def usage_percentage(self) -> float:
        if self.max_size_bytes <= 0:
            return 0.0
        return round(self.used_bytes / self.max_size_bytes * 100, 1)

    @computed_field
    @property
    def is_near_limit(self) -> bool:
        return self.usage_percentage > 80

    @computed_field
    @property
    def is_over_limit(self) -> bool:
        return self.usage_percentage > 100


class DatabaseHealthResponse(BaseModel):
    status: str = Field(description="healthy, warning or critical")
    database: DatabaseStats
    timestamp: datetime


class MaintenanceReport(BaseModel):
    """Outcome of one janitor pass."""

    deleted: int = 0
    vacuumed: bool = False
    before: DatabaseStats
    after: DatabaseStats


class CleanupResponse(MaintenanceReport):
    status: str
    timestamp: datetime
