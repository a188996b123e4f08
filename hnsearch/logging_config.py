import sys

from loguru import logger

from hnsearch.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logging(log_level: str | None = None) -> None:
    """Replace loguru's default handler with one at the configured level."""
    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=(log_level or settings.LOG_LEVEL).upper())
