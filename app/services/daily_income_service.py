"""
Daily income service.

Runs the periodic daily income distribution over all active holdings.
Only one run may be in flight: a process-local flag rejects overlapping
triggers in the same process and a persisted lease rejects runs in other
processes.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    DAILY_INCOME_JOB_NAME,
    SCHEDULER_LEASE_SECONDS,
)
from app.services.base_service import BaseService, log_operation
from app.services.income.daily_income_processor import (
    DailyIncomeProcessor,
    HoldingOutcome,
)
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.lease_lock import DatabaseLease


@dataclass
class DistributionResult:
    """Summary of one distribution run."""

    processed: int = 0
    skipped: int = 0
    failed: int = 0
    completed: int = 0
    total_distributed: Decimal = Decimal("0")
    run_skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        data = asdict(self)
        data["total_distributed"] = str(self.total_distributed)
        return data


class DailyIncomeService(BaseService):
    """Daily income distribution job."""

    # Process-local single-flight flag
    _run_in_progress = False

    def __init__(
        self,
        session: AsyncSession,
        lease_holder: str | None = None,
    ) -> None:
        """
        Initialize daily income service.

        Args:
            session: Database session (committed once per holding)
            lease_holder: Holder id for the persisted lease
        """
        super().__init__(session)
        self.processor = DailyIncomeProcessor(session)
        self.lease_holder = lease_holder

    @classmethod
    def is_running(cls) -> bool:
        """Whether a run is in progress in this process."""
        return cls._run_in_progress

    @log_operation
    async def run_daily_income_distribution(
        self, now: datetime | None = None
    ) -> DistributionResult:
        """
        Pay every due holding once.

        Overlapping triggers return ``run_skipped=True`` instead of
        running concurrently.

        Args:
            now: Run time (defaults to current time)

        Returns:
            DistributionResult
        """
        # Checked and set before the first await
        if DailyIncomeService._run_in_progress:
            self.logger.warning("Daily income run already in progress, skipping")
            return DistributionResult(run_skipped=True)
        DailyIncomeService._run_in_progress = True

        try:
            now = ensure_utc(now) if now else utc_now()
            lease = DatabaseLease(
                self.session,
                DAILY_INCOME_JOB_NAME,
                ttl_seconds=SCHEDULER_LEASE_SECONDS,
                holder=self.lease_holder,
            )
            if not await lease.acquire(now):
                return DistributionResult(run_skipped=True)

            try:
                return await self._distribute(now)
            except Exception:
                await self.rollback()
                raise
            finally:
                await lease.release()
        finally:
            DailyIncomeService._run_in_progress = False

    async def _distribute(self, now: datetime) -> DistributionResult:
        """Process all candidate holdings, committing after each."""
        result = DistributionResult()
        holding_ids = await self.processor.get_candidate_ids()

        self.logger.info(
            f"Daily income run started: {len(holding_ids)} candidate holdings",
            extra={"candidates": len(holding_ids), "run_at": now.isoformat()},
        )

        for holding_id in holding_ids:
            try:
                outcome, amount = await self.processor.pay_holding(holding_id, now)
                await self.commit()
            except Exception as e:
                await self.rollback()
                self.logger.error(
                    f"Daily income failed for holding {holding_id}: {e}",
                    extra={"holding_id": holding_id},
                )
                await self.processor.record_failure(holding_id, e, now)
                await self.commit()
                result.failed += 1
                continue

            if outcome == HoldingOutcome.SKIPPED:
                result.skipped += 1
                continue

            result.processed += 1
            result.total_distributed += amount
            if outcome == HoldingOutcome.COMPLETED:
                result.completed += 1

        self.logger.info(
            "Daily income run finished",
            extra=result.to_dict(),
        )
        return result
