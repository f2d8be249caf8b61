"""Logging configuration for proctime."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from proctime.config import LOG_FILE_NAME

LOGGER_NAME = "proctime"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(log_file: Path | str = LOG_FILE_NAME, level: int = logging.INFO) -> logging.Logger:
    """
    Attach a rotating file handler to the proctime logger.

    Nothing is written to the console since the terminal belongs to the UI.
    Calling this more than once does not add duplicate handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    if not logger.handlers:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            path,
            maxBytes=1_000_000,
            backupCount=3,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)

    return logger
