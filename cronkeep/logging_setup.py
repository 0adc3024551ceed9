"""Logging configuration for cronkeep processes."""

import logging
import sys
from pathlib import Path
from typing import Optional

from cronkeep.config import LoggingConfig

DEBUG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    fmt: Optional[str] = None,
) -> None:
    """Configure the root logger.

    Console output goes to stderr at ``level``. When ``log_file`` is given,
    a file handler is added that always records DEBUG.

    Args:
        level: Console log level
        log_file: Optional log file path
        fmt: Log record format (defaults to the debug format at DEBUG level)
    """
    if fmt is None:
        fmt = DEBUG_FORMAT if level <= logging.DEBUG else LoggingConfig.format

    handlers: list[logging.Handler] = []

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        handlers.append(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    handlers.append(console_handler)

    logging.basicConfig(
        level=logging.DEBUG if log_file else level,
        format=fmt,
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured: level={logging.getLevelName(level)}")


def setup_logging_from_config(config: LoggingConfig) -> None:
    """Configure logging from a LoggingConfig section."""
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    setup_logging(level=level, log_file=config.file, fmt=config.format)
