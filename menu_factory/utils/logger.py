"""Logging configuration using loguru.

- Console sink always enabled, level from settings
- Optional file sink (``MENU_FACTORY_LOG_FILE``) with size-based rotation
- Compression of rotated files
"""

import sys

from loguru import logger

from menu_factory.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def setup_logger(level: str = None, log_file: str = None):
    """Configure loguru sinks for the engine.

    Args:
        level: Console log level (defaults to settings.log_level)
        log_file: Optional path of a rotating log file (defaults to settings.log_file)

    Returns:
        The configured loguru logger
    """
    level = level or settings.log_level
    log_file = settings.log_file if log_file is None else log_file

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        format=LOG_FORMAT,
        level=level,
        colorize=True,
    )

    if log_file:
        logger.add(
            log_file,
            format=LOG_FORMAT,
            level=level,
            rotation="50 MB",
            retention="30 days",
            compression="zip",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

    return logger


# Initialize logger
log = setup_logger() if settings.configure_logging else logger
