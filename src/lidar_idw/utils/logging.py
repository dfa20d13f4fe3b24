"""
Logging Utilities

This module sets up logging for the project with a consistent format
for console output and an optional log file shared by worker threads.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


def setup_logger(name: str,
                 level: int = logging.INFO,
                 log_file: Optional[str] = None) -> logging.Logger:
    """
    Set up a logger with consistent formatting.

    Args:
        name: Logger name (usually __name__)
        level: Logging level (default: logging.INFO)
        log_file: Optional log file path. If provided, logs will be written to this file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid adding multiple handlers
    if logger.handlers:
        return logger

    logger.setLevel(level)

    console_formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    # Worker threads share one process, so the file log names the thread
    file_formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


def set_package_level(level: int) -> None:
    """Apply a level to every logger already created under ``lidar_idw``."""
    manager = logging.Logger.manager
    for name, existing in list(manager.loggerDict.items()):
        if not name.startswith("lidar_idw") or not isinstance(existing, logging.Logger):
            continue
        existing.setLevel(level)
        for handler in existing.handlers:
            handler.setLevel(level)
