"""Unit tests for logging setup."""

import logging
from pathlib import Path

import pytest

from daily_health_journal.utils.exceptions import ConfigurationError
from daily_health_journal.utils.logging_config import get_logger, setup_logging
from daily_health_journal.utils.parameters import LoggingConfig

FORMAT = "%(name)s - %(levelname)s - %(message)s"


def test_package_logger_writes_module_records(tmp_path: Path) -> None:
    """Test that module loggers reach the configured file once per call."""
    log_file = tmp_path / "logs" / "journal.log"
    config = LoggingConfig(level="info", format=FORMAT, file=str(log_file), console=False)

    setup_logging(config)
    logger = setup_logging(config)
    try:
        logging.getLogger("daily_health_journal.services.backfill").info("Backfill created 3 records")
        logging.getLogger("daily_health_journal.services.backfill").debug("hidden")
        for handler in logger.handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        if lines != ["daily_health_journal.services.backfill - INFO - Backfill created 3 records"]:
            raise AssertionError(f"Unexpected log lines {lines}")
        if len(logger.handlers) != 1 or logger.propagate:
            raise AssertionError(f"Expected one handler and no propagation, got {logger.handlers}")
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)


def test_unknown_level() -> None:
    """Test that a misspelled level is a configuration error."""
    with pytest.raises(ConfigurationError):
        setup_logging(LoggingConfig(level="verbose", format=FORMAT, console=False))


def test_get_logger_namespaces_names() -> None:
    """Test that loggers land under the package logger."""
    if get_logger("__main__").name != "daily_health_journal.__main__":
        raise AssertionError(f"Unexpected name {get_logger('__main__').name}")
    if get_logger("daily_health_journal.cli.main").name != "daily_health_journal.cli.main":
        raise AssertionError("Expected package names unchanged")
