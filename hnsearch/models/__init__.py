from hnsearch.models.base import Base, TimestampMixin
from hnsearch.models.runs import IndexingRun
from hnsearch.models.search_index import stories_search
from hnsearch.models.stories import Story

__all__ = ["Base", "TimestampMixin", "IndexingRun", "Story", "stories_search"]
