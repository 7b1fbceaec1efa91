"""Centralized logging configuration using loguru."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from loguru import logger

if TYPE_CHECKING:
    from app.core.config import Settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(settings: "Settings") -> None:
    """Install console (and optional rotating file) sinks.

    Safe to call more than once; previously installed sinks are replaced.

    Args:
        settings: Loaded application settings (log_level, log_dir)
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format=CONSOLE_FORMAT,
        colorize=True,
    )

    if settings.log_dir:
        logs_dir = Path(settings.log_dir)
        logs_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            logs_dir / "cardiastrain_{time}.log",
            rotation="50 MB",
            retention="10 days",
            level="DEBUG",
            format=FILE_FORMAT,
            enqueue=True,
        )


def get_logger(name: Optional[str] = None):
    """Get a logger instance with the given name.

    Args:
        name: Module name for the logger (usually __name__)

    Returns:
        Configured logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger


__all__ = ["logger", "configure_logging", "get_logger"]
