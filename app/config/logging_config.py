"""
Logging configuration.

Configures loguru sinks for services, workers and the scheduler.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger

from app.config.settings import settings


def setup_logging(component: str = "ledger") -> None:
    """
    Configure logger with stderr and rotated file sinks.

    Args:
        component: Process name shown in the startup line
    """
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        settings.log_file,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
    )

    logger.info(f"Starting work-up {component}...")
