from datetime import datetime

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from hnsearch.models.base import Base, UTCDateTime, utcnow


class Story(Base):
    __tablename__ = "stories"

    # Assigned by Hacker News, never generated locally
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(100), nullable=False)
    url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    domain: Mapped[str | None] = mapped_column(String(200), nullable=True)
    indexed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        Index("ix_stories_score", "score"),
        Index("ix_stories_created_at", "created_at"),
        Index("ix_stories_author", "author"),
        Index("ix_stories_domain", "domain"),
        Index("ix_stories_indexed_at", "indexed_at"),
        Index("ix_stories_created_at_score", "created_at", "score"),
    )

    def __repr__(self) -> str:
        return f"<Story(id={self.id}, title='{self.title[:40]}', score={self.score})>"

    @property
    def has_url(self) -> bool:
        return bool(self.url)

    @property
    def hacker_news_url(self) -> str:
        return f"https://news.ycombinator.com/item?id={self.id}"
