"""
Logging utilities for the skill manager.

Library modules only ask for child loggers; handlers are installed by the
host (or the CLI) through ``setup_logging``.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

# Package root logger
_root_logger = logging.getLogger("skill_manager")

# Level to restore on enable(); None while logging is enabled
_level_before_disable: int | None = None


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def setup_logging(
    level: str | int = "INFO",
    format: str | None = None,
    stream: TextIO | None = None,
    file: str | None = None,
) -> None:
    """
    Configure logging for the skill manager.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or int
        format: Custom log format string
        stream: Output stream (defaults to stderr)
        file: Optional file path to write logs

    Example:
        from skill_manager.logging import setup_logging

        setup_logging("DEBUG")
        setup_logging("INFO", file="skill-manager.log")
    """
    global _level_before_disable
    level = _coerce_level(level)
    _level_before_disable = None
    _root_logger.setLevel(level)
    _root_logger.handlers.clear()

    if format is None:
        format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    formatter = logging.Formatter(format)

    stream_handler = logging.StreamHandler(stream or sys.stderr)
    stream_handler.setFormatter(formatter)
    _root_logger.addHandler(stream_handler)

    if file:
        file_handler = logging.FileHandler(file)
        file_handler.setFormatter(formatter)
        _root_logger.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a submodule.

    Args:
        name: Submodule name (e.g., "installer", "remote.client")

    Returns:
        Logger instance
    """
    if name.startswith("skill_manager."):
        return logging.getLogger(name)
    return logging.getLogger(f"skill_manager.{name}")


def set_level(level: str | int) -> None:
    """Set the log level for the skill manager."""
    _root_logger.setLevel(_coerce_level(level))


def disable() -> None:
    """Silence the skill manager's loggers until ``enable`` is called."""
    global _level_before_disable
    if _level_before_disable is None:
        _level_before_disable = _root_logger.level
    # Child loggers inherit this effective level
    _root_logger.setLevel(logging.CRITICAL + 1)


def enable() -> None:
    """Restore the level that was active before ``disable``."""
    global _level_before_disable
    if _level_before_disable is not None:
        _root_logger.setLevel(_level_before_disable)
        _level_before_disable = None
