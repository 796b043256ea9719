import sys
from loguru import logger

from flixstatus.config import settings

def setup_logging() -> None:
    """Configura loguru: stderr siempre, archivo rotativo si LOG_FILE está definido."""
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL.upper())
    if settings.LOG_FILE:
        logger.add(
            settings.LOG_FILE,
            rotation="10 MB",
            retention="30 days",
            level=settings.LOG_LEVEL.upper(),
            format="{time:YYYY-MM-DD HH:mm:ss} | {level:<8} | {message}",
        )
