"""
Logging configuration utilities for Gazeframe.

Provides configurable logging with file rotation support.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from ..config import DEFAULT_LOG_FORMAT, GazeConfig

DEFAULT_MAX_BYTES = 10485760


def _configure_root(
    level: int,
    log_format: str,
    log_file: Optional[str],
    max_bytes: int,
    backup_count: int,
) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def setup_logging(config: Optional[GazeConfig] = None) -> None:
    """
    Configure logging based on GazeConfig settings.

    Args:
        config: GazeConfig instance. If None, uses sensible defaults.

    Example:
        config = GazeConfig.load("gazeframe.yaml")
        setup_logging(config)
    """
    if config is None:
        _configure_root(logging.INFO, DEFAULT_LOG_FORMAT, None, DEFAULT_MAX_BYTES, 3)
        return

    _configure_root(
        getattr(logging, config.log_level.upper(), logging.INFO),
        config.log_format,
        config.log_file or None,
        config.log_max_bytes,
        config.log_backup_count,
    )
