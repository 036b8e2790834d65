# core/logging.py
import sys

from loguru import logger

from core.config import Settings


def setup_logging(settings: Settings) -> None:
    """Replace loguru's default sink with one honouring ``LOG_LEVEL`` / ``LOG_JSON``."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL.upper(),
        serialize=settings.LOG_JSON,
        backtrace=settings.DEBUG,
        diagnose=settings.DEBUG,
    )
