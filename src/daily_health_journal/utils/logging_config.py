"""
Logging configuration and utilities.

Configures the ``daily_health_journal`` package logger that every module logs
through via ``logging.getLogger(__name__)``.
"""

import logging
import sys
from pathlib import Path

from daily_health_journal.utils.exceptions import ConfigurationError
from daily_health_journal.utils.parameters import LoggingConfig

PACKAGE_LOGGER = "daily_health_journal"

# Chatty below WARNING when the package runs at DEBUG.
QUIET_LOGGERS = ("asyncio",)


def setup_logging(config: LoggingConfig, logger_name: str = PACKAGE_LOGGER) -> logging.Logger:
    """
    Set up logging for the journal engine.

    Replaces any handlers left by an earlier call, so commands that reload
    configuration do not duplicate log lines.

    Args:
        config: Logging configuration.
        logger_name: Logger to configure, the package logger by default.

    Returns:
        Configured logger instance.

    Raises:
        ConfigurationError: If the level is unknown or the log file cannot be opened.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown logging level: {config.level}")

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(config.format)

    if config.console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if config.file:
        log_file = Path(config.file)
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot open log file {log_file}: {e}") from e
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    logger.debug(f"Logging configured at {logging.getLevelName(level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the package namespace."""
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
