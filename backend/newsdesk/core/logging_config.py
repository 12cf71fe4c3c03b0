"""
Logging setup

Console output goes to stdout (for container logs); a UTF-8 log file is
added when LOG_FILE is set.
"""
import logging
import sys

from newsdesk.core.config import Settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(settings: Settings) -> logging.Logger:
    """
    Attach console and file handlers to the root logger.

    Safe to call more than once: handlers are only added when missing.

    Args:
        settings: application settings (LOG_LEVEL, LOG_FILE)

    Returns:
        logging.Logger: the root logger
    """
    logger = logging.getLogger()
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if settings.LOG_FILE and not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        file_handler = logging.FileHandler(settings.LOG_FILE, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.setLevel(level)

    # httpx logs every request at INFO; the client already does that
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logger
