"""Tests for proctime logging configuration."""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from proctime.logging_setup import LOGGER_NAME, setup_logging


@pytest.fixture
def clean_logger():
    """Remove handlers added to the proctime logger by a test."""
    logger = logging.getLogger(LOGGER_NAME)
    original = list(logger.handlers)
    yield logger
    for handler in logger.handlers:
        if handler not in original:
            handler.close()
    logger.handlers = original


def test_setup_logging_writes_file(tmp_path, clean_logger):
    """Test module loggers under proctime end up in the log file."""
    log_file = tmp_path / "logs" / "proctime.log"
    setup_logging(log_file)

    logging.getLogger("proctime.store").info("hello from the store")
    for handler in clean_logger.handlers:
        handler.flush()

    text = log_file.read_text(encoding="utf-8")
    assert "hello from the store" in text
    assert "| INFO | proctime.store |" in text


def test_setup_logging_idempotent(tmp_path, clean_logger):
    """Test calling setup twice adds a single rotating handler."""
    setup_logging(tmp_path / "proctime.log")
    setup_logging(tmp_path / "proctime.log")

    handlers = [h for h in clean_logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(handlers) == 1
