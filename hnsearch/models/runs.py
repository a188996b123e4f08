from datetime import datetime

from sqlalchemy import Index, Integer, String, desc
from sqlalchemy.orm import Mapped, mapped_column

from hnsearch.models.base import Base, TimestampMixin, UTCDateTime


class IndexingRun(Base, TimestampMixin):
    __tablename__ = "indexing_runs"
    __table_args__ = (
        Index("ix_indexing_runs_started_at_desc", desc("started_at")),
        Index("ix_indexing_runs_kind_started_at_desc", "kind", desc("started_at")),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    items_fetched: Mapped[int] = mapped_column(Integer, default=0)
    items_new: Mapped[int] = mapped_column(Integer, default=0)
    items_updated: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default="running")
    error_notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<IndexingRun(id={self.id}, kind='{self.kind}', status='{self.status}')>"

    @property
    def duration_seconds(self) -> float | None:
        """Calculate duration in seconds if run is completed."""
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def is_running(self) -> bool:
        return self.status == "running"
