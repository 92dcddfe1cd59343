"""
Logging setup.

Every module obtains its logger through setup_logger(__name__).
"""

import logging
import sys

from todotoday.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logger(name: str) -> logging.Logger:
    """
    Create (or return) a named logger with a single stream handler.

    The level follows Settings.LOG_LEVEL, forced to DEBUG when Settings.DEBUG is set.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    settings = get_settings()
    level = logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL.upper()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = True
    return logger
