"""
Daily income task.

In-process entry point used by the periodic scheduler. Pays every due
holding once; overlapping triggers are skipped by the service.
"""

from __future__ import annotations

from loguru import logger

from app.config.database import async_session_maker
from app.services.daily_income_service import DailyIncomeService, DistributionResult

# Result of the last run, read by the scheduler health endpoint
last_result: DistributionResult | None = None


async def run_daily_income_distribution() -> DistributionResult | None:
    """
    Run one daily income distribution with a fresh session.

    Returns:
        DistributionResult, or None if the run crashed
    """
    global last_result

    logger.info("Starting scheduled daily income distribution")

    try:
        async with async_session_maker() as session:
            service = DailyIncomeService(session)
            result = await service.run_daily_income_distribution()
    except Exception as e:
        logger.exception(f"Daily income distribution crashed: {e}")
        return None

    last_result = result
    if result.run_skipped:
        logger.info("Daily income distribution skipped, another run is active")
    else:
        logger.info(
            f"Daily income distribution complete: {result.processed} paid, "
            f"{result.completed} completed, {result.failed} failed, "
            f"total {result.total_distributed}"
        )
    return result
