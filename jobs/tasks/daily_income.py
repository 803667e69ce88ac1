"""
Daily income task.

Dramatiq actor for manually triggered daily income runs (admin tools,
catch-up after downtime). Uses the same single-flight guard as the
periodic scheduler, so a manual run never overlaps a scheduled one.
"""

from datetime import datetime

import dramatiq
from loguru import logger

from app.services.daily_income_service import DailyIncomeService
from jobs.async_runner import create_local_session, run_async
from jobs.broker import broker  # noqa: F401


@dramatiq.actor(max_retries=3, time_limit=600_000)  # 10 min, below the lease TTL
def distribute_daily_income(run_at: str | None = None) -> dict:
    """
    Pay every due holding once.

    Args:
        run_at: Optional ISO-8601 run time (defaults to now)

    Returns:
        Distribution summary dict
    """
    now = datetime.fromisoformat(run_at) if run_at else None
    logger.info(
        f"Manual daily income run requested"
        f"{f' for {run_at}' if run_at else ''}"
    )

    result = run_async(_distribute_daily_income_async(now))

    logger.info(
        f"Manual daily income run finished: {result['processed']} paid, "
        f"{result['failed']} failed, skipped run: {result['run_skipped']}"
    )
    return result


async def _distribute_daily_income_async(now: datetime | None) -> dict:
    """Async implementation of the daily income run."""
    async with create_local_session() as session:
        service = DailyIncomeService(session)
        result = await service.run_daily_income_distribution(now)
        return result.to_dict()
