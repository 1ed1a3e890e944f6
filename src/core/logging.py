"""Loguru sink configuration shared by the CLI and the API."""

from __future__ import annotations

import sys

from loguru import logger

from config import Settings, get_settings


def configure_logging(settings: Settings | None = None, level: str | None = None) -> None:
    """
    Replace the default loguru sink with the configured ones.

    Args:
        settings: Application settings (cached settings if None)
        level: Overrides ``settings.log_level`` for the stderr sink
    """
    settings = settings or get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level or settings.log_level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{function} - <level>{message}</level>",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention="14 days",
            encoding="utf-8",
        )
