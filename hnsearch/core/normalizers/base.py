import re
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from loguru import logger
from pydantic import BaseModel


class NormalizationError(Exception):
    """Exception raised when normalization fails."""

    def __init__(self, message: str, item_id: int | None = None, original_error: Exception | None = None) -> None:
        self.message = message
        self.item_id = item_id
        self.original_error = original_error
        super().__init__(self.message)


InputType = TypeVar("InputType", bound=BaseModel)
OutputType = TypeVar("OutputType", bound=BaseModel)


class BaseNormalizer(ABC, Generic[InputType, OutputType]):
    """Abstract base class for data normalizers."""

    @abstractmethod
    def normalize(self, raw_item: InputType) -> OutputType:
        """
        Normalize a raw item into the target format.

        Raises:
            NormalizationError: If normalization fails
        """
        pass

    def normalize_batch(self, raw_items: list[InputType]) -> list[OutputType]:
        """Normalize a batch of raw items, skipping the ones that fail."""
        normalized_items = []
        failed_count = 0

        for raw_item in raw_items:
            try:
                normalized_items.append(self.normalize(raw_item))
            except NormalizationError as e:
                logger.warning(f"Failed to normalize item {e.item_id}: {e.message}")
                failed_count += 1

        if failed_count:
            logger.info(f"Normalized {len(normalized_items)} items, {failed_count} failed")
        return normalized_items

    def _clean_text(self, text: str | None) -> str | None:
        """Collapse whitespace; returns None if nothing is left."""
        if not text:
            return None

        cleaned = re.sub(r"\s+", " ", text).strip()
        return cleaned if cleaned else None

    def _truncate(self, text: str, max_length: int) -> str:
        return text if len(text) <= max_length else text[:max_length]
