"""
Daily income processor.

Pays a single holding its daily income. The caller commits after each
holding, so one failure never affects another holding's payout.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from enum import StrEnum

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import DAILY_INCOME_INTERVAL_HOURS
from app.models.enums import HoldingStatus, TransactionStatus, TransactionType
from app.models.user import User
from app.models.user_product import UserProduct
from app.repositories.product_repository import UserProductRepository
from app.repositories.transaction_repository import TransactionRepository
from app.repositories.user_repository import UserRepository
from app.services.ledger.ledger_service import LedgerService
from app.utils.datetime_utils import business_day_start, ensure_utc
from app.utils.exceptions import NotFoundError, ValidationError


class HoldingOutcome(StrEnum):
    """Outcome of processing one holding."""

    PAID = "paid"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class DailyIncomeProcessor:
    """Processes daily income for individual holdings."""

    def __init__(
        self,
        session: AsyncSession,
        interval_hours: int = DAILY_INCOME_INTERVAL_HOURS,
    ) -> None:
        """
        Initialize daily income processor.

        Args:
            session: Database session
            interval_hours: Minimum hours between two payouts of a holding
        """
        self.session = session
        self.interval = timedelta(hours=interval_hours)
        self.holding_repo = UserProductRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.user_repo = UserRepository(session)
        self.ledger = LedgerService(session)

    async def get_candidate_ids(self) -> list[int]:
        """Get IDs of holdings with status active and remaining days."""
        return await self.holding_repo.get_payable_ids()

    async def is_due(self, holding: UserProduct, now: datetime) -> bool:
        """
        Check both payout conditions for a holding.

        A holding is due when the interval has elapsed since its last
        payment (or purchase) AND it has not been paid during the current
        business day.

        Args:
            holding: Locked holding
            now: Run time

        Returns:
            True if the holding should be paid now
        """
        last = ensure_utc(holding.last_payment_date or holding.purchase_date)
        if now - last < self.interval:
            return False
        paid_today = await self.transaction_repo.has_daily_income_since(
            holding.id, business_day_start(now)
        )
        return not paid_today

    async def pay_holding(
        self, holding_id: int, now: datetime
    ) -> tuple[HoldingOutcome, Decimal]:
        """
        Pay one holding if it is due.

        Args:
            holding_id: Holding ID
            now: Run time

        Returns:
            Tuple of (outcome, amount paid)

        Raises:
            NotFoundError: If the owner no longer exists
            ValidationError: If the owner is disabled
        """
        holding = await self.holding_repo.lock_payable(holding_id)
        if holding is None:
            # Finished meanwhile or locked by another worker
            return HoldingOutcome.SKIPPED, Decimal("0")

        if not await self.is_due(holding, now):
            return HoldingOutcome.SKIPPED, Decimal("0")

        owner = await self.user_repo.get_by_id(holding.user_id)
        if owner is None:
            raise NotFoundError(
                f"Owner {holding.user_id} of holding {holding.id} not found",
                holding_id=holding.id,
            )
        if not owner.is_active:
            raise ValidationError(
                f"Owner {holding.user_id} of holding {holding.id} is disabled",
                holding_id=holding.id,
            )

        day_number = holding.total_days - holding.remaining_days + 1
        await self.ledger.post_credit(
            holding.user_id,
            holding.daily_income,
            TransactionType.DAILY_INCOME.value,
            occurred_at=now,
            user_product_id=holding.id,
            description=(
                f"Daily income from {holding.product_name} "
                f"(day {day_number}/{holding.total_days})"
            ),
        )

        holding.total_earned = (holding.total_earned or Decimal("0")) + holding.daily_income
        holding.remaining_days -= 1
        holding.last_payment_date = now

        outcome = HoldingOutcome.PAID
        if holding.remaining_days <= 0:
            holding.remaining_days = 0
            holding.status = HoldingStatus.COMPLETED.value
            holding.completed_at = now
            outcome = HoldingOutcome.COMPLETED

        await self.session.flush()

        logger.debug(
            "Daily income paid",
            extra={
                "holding_id": holding.id,
                "user_id": holding.user_id,
                "amount": str(holding.daily_income),
                "remaining_days": holding.remaining_days,
            },
        )
        return outcome, holding.daily_income

    async def record_failure(
        self, holding_id: int, error: Exception, now: datetime
    ) -> None:
        """
        Write a system_error transaction for a failed holding.

        Must be called after the failed work was rolled back.

        Args:
            holding_id: Holding that failed
            error: Exception raised while paying it
            now: Run time
        """
        stmt = (
            select(User.id)
            .join(UserProduct, UserProduct.user_id == User.id)
            .where(UserProduct.id == holding_id)
        )
        result = await self.session.execute(stmt)
        owner_id = result.scalar_one_or_none()

        await self.transaction_repo.create(
            user_id=owner_id,
            type=TransactionType.SYSTEM_ERROR.value,
            amount=Decimal("0"),
            status=TransactionStatus.FAILED.value,
            user_product_id=holding_id,
            description=f"Daily income failed for holding {holding_id}: {error}",
            created_at=now,
        )
