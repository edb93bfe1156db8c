"""Logging configuration for services using the allocation engine.

Provides dual output (stdout + file) with configurable level via LOG_LEVEL env var.
Default: INFO. Set LOG_LEVEL=WARNING for production, DEBUG to see per-obligation
allocation detail and penalty calculations.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from payledger.services.config import get_settings

# Map string level names to logging constants
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level(level_name: Optional[str] = None) -> int:
    """Resolve a level name (default: settings LOG_LEVEL) to a logging constant.

    Returns:
        Logging level constant (INFO for unknown names)
    """
    if level_name is None:
        level_name = get_settings().log_level
    return LOG_LEVEL_MAP.get(level_name.upper(), logging.INFO)


def setup_logging(log_file: Optional[str] = None, level_name: Optional[str] = None) -> None:
    """
    Configure root logger for payment processing.

    Args:
        log_file: Path to log file (default: settings LOG_FILE)
        level_name: Level name overriding LOG_LEVEL

    Behavior:
        - Sets up all loggers to output to both stdout and file
        - ISO format timestamps for consistency
        - Suitable for both real-time debugging and audit trails
    """
    log_path = Path(log_file or get_settings().log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # ISO format: [YYYY-MM-DD HH:MM:SS]
    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_level = get_log_level(level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(log_level)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)


__all__ = ["LOG_LEVEL_MAP", "get_log_level", "setup_logging"]
