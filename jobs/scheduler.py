"""
Periodic job scheduler.

Runs the daily income distribution on an interval. The hourly check is
cheap: holdings are only paid once the payout interval has elapsed and
they have not been paid in the current business day.

Usage:
    python -m jobs.scheduler
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from app.config.business_constants import DAILY_INCOME_JOB_NAME
from app.config.database import async_engine
from app.config.logging_config import setup_logging
from app.config.settings import settings
from app.tasks.daily_income_task import run_daily_income_distribution
from app.utils.datetime_utils import utc_now
from jobs.health import set_scheduler, start_health_server, stop_health_server


def create_scheduler() -> AsyncIOScheduler:
    """
    Create scheduler with the daily income job registered.

    Returns:
        Configured (not started) scheduler
    """
    scheduler = AsyncIOScheduler(timezone=settings.business_timezone)
    scheduler.add_job(
        run_daily_income_distribution,
        "interval",
        minutes=settings.daily_income_check_interval_minutes,
        id=DAILY_INCOME_JOB_NAME,
        name="Daily income distribution",
        max_instances=1,
        coalesce=True,
        next_run_time=utc_now(),
        replace_existing=True,
    )
    return scheduler


async def main() -> None:
    """Start the scheduler and block until SIGINT/SIGTERM."""
    setup_logging("scheduler")

    scheduler = create_scheduler()
    scheduler.start()
    set_scheduler(scheduler)
    logger.info(
        f"Scheduler started: daily income check every "
        f"{settings.daily_income_check_interval_minutes} min"
    )

    runner = None
    if settings.scheduler_health_enabled:
        runner = await start_health_server(
            settings.scheduler_health_host, settings.scheduler_health_port
        )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down scheduler...")
        scheduler.shutdown(wait=False)
        if runner is not None:
            await stop_health_server(runner)
        await async_engine.dispose()
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
