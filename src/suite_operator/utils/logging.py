"""Rotating logger setup for the operator service."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable

from suite_operator.config.settings import Settings

# Client libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logger(
    name: str = "suite_operator",
    log_file: str = "./logs/suite-operator.log",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 3,
    level: int = logging.INFO,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> logging.Logger:
    """Setup rotating file logger with ISO 8601 timestamps.

    Every ``suite_operator.*`` module logger propagates to the logger set up
    here, so configuring the package root is enough.

    Args:
        name: Logger name
        log_file: Path to log file (created if doesn't exist)
        max_bytes: Max size before rotation
        backup_count: Number of rotated files to keep
        level: Logging level
        quiet_loggers: Loggers capped at WARNING

    Returns:
        Configured logger instance
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    for noisy in quiet_loggers:
        logging.getLogger(noisy).setLevel(max(level, logging.WARNING))

    # Avoid duplicate handlers if already configured
    if logger.handlers:
        return logger

    file_handler = RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def setup_from_settings(settings: Settings) -> logging.Logger:
    """Configure the package logger from operator settings."""
    return setup_logger(
        "suite_operator",
        settings.log_file,
        level=settings.log_level_value,
    )
