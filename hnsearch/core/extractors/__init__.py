"""Remote story sources."""

from hnsearch.core.extractors.base import BaseExtractor, ExtractorConfig, StorySource
from hnsearch.core.extractors.hackernews import HackerNewsClient

__all__ = [
    "BaseExtractor",
    "ExtractorConfig",
    "StorySource",
    "HackerNewsClient",
]
