"""Logging setup for InfoLine.

Modules log through ``logging.getLogger(__name__)``. The API and the Celery
worker call ``configure_from_settings`` once at start-up, which attaches the
handlers to the ``infoline`` logger so every package module inherits them.
"""

import logging
import logging.handlers
import os
from typing import List, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
ISO_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_level(level: str) -> int:
    name = level.upper()
    if name not in LEVELS:
        raise ValueError(f"Invalid log level: {level}. Must be one of: {', '.join(LEVELS)}")
    return getattr(logging, name)


def _build_handlers(
    name: str,
    log_dir: str,
    file_logging: bool,
    console_logging: bool,
    max_bytes: int,
    backup_count: int,
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if file_logging:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            os.path.join(log_dir, f"{name}.log"),
            maxBytes=max_bytes,
            backupCount=backup_count,
        ))
    if console_logging:
        handlers.append(logging.StreamHandler())
    return handlers


def setup_logger(
    name: str = "infoline",
    log_dir: str = "logs",
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    file_logging: bool = False,
    console_logging: bool = True,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
) -> logging.Logger:
    """Configure a logger with console and/or rotating file output.

    Calling it again for the same name only updates the level.

    Args:
        name: Logger name; ``infoline`` covers every package module
        log_dir: Directory for ``<name>.log``
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: Record format, ``LOG_FORMAT`` by default
        date_format: Timestamp format, ISO 8601 by default
        file_logging: Write to a rotating file in ``log_dir``
        console_logging: Write to stderr
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files to keep
    """
    logger = logging.getLogger(name)
    logger.setLevel(_parse_level(level))
    if logger.handlers:
        return logger

    formatter = logging.Formatter(log_format or LOG_FORMAT, datefmt=date_format or ISO_DATE_FORMAT)
    for handler in _build_handlers(name, log_dir, file_logging, console_logging, max_bytes, backup_count):
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger


def configure_from_settings(settings) -> logging.Logger:
    """Configure the package logger from ``Settings``."""
    return setup_logger(
        "infoline",
        log_dir=settings.log_dir,
        level=settings.log_level,
        file_logging=settings.log_to_file,
    )
