"""Conversion between Hacker News API items and stored stories."""

from hnsearch.core.normalizers.base import BaseNormalizer, NormalizationError
from hnsearch.core.normalizers.stories import StoryNormalizer

__all__ = [
    "BaseNormalizer",
    "NormalizationError",
    "StoryNormalizer",
]
