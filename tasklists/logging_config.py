"""Centralized logging configuration for the tasklists package.

This module provides a standardized logging setup with:
- File-based logging with rotation
- Optional console echo for the command-line entry point
- Configurable log levels via environment variable
- Automatic log directory creation
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


# Log file configuration
LOG_DIR = Path.home() / ".tasklists" / "logs"
LOG_FILE = LOG_DIR / "tasklists.log"

# Log format configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rotation configuration
MAX_BYTES = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5


def setup_logging(
    log_level: Optional[str] = None,
    console: bool = False
) -> None:
    """Initialize application logging with file rotation.

    Creates log directory if it doesn't exist and configures a rotating
    file handler for all application logs.

    Args:
        log_level: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                  If None, reads from TASKLISTS_LOG_LEVEL environment variable.
                  Defaults to INFO if not specified.
        console: If True, also echo records to stderr.

    Example:
        >>> setup_logging()  # Uses default INFO level
        >>> setup_logging(log_level="DEBUG")  # Override to DEBUG
    """
    # Determine log level from parameter, env var, or default
    if log_level is None:
        log_level = os.getenv("TASKLISTS_LOG_LEVEL", "INFO")
    log_level = log_level.upper()

    # Validate log level
    numeric_level = getattr(logging, log_level, None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level = "INFO"

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    file_handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8"
    )
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(numeric_level)
        stream_handler.setFormatter(formatter)
        root_logger.addHandler(stream_handler)

    logger = logging.getLogger(__name__)
    logger.info(
        f"Logging initialized: level={log_level}, "
        f"file={LOG_FILE}, console={console}"
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the specified module.

    Args:
        name: Module name, typically __name__

    Returns:
        Logger instance configured with the module name
    """
    return logging.getLogger(name)
