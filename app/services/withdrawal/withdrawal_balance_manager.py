"""
Withdrawal balance management module.

Handles fee calculation, balance deduction at request time and refunds
on rejection.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import WITHDRAWAL_FEE_PERCENT
from app.models.enums import TransactionStatus, TransactionType
from app.models.transaction import Transaction
from app.services.ledger.ledger_service import LedgerService
from app.utils.money import percent_of


class WithdrawalBalanceManager:
    """Manages balance operations for withdrawals."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal balance manager.

        Args:
            session: Database session
        """
        self.session = session
        self.ledger = LedgerService(session)

    def calculate_fee(
        self, amount: Decimal, fee_percent: Decimal = WITHDRAWAL_FEE_PERCENT
    ) -> Decimal:
        """
        Calculate withdrawal fee.

        Args:
            amount: Requested withdrawal amount
            fee_percent: Fee percentage (5 = 5%)

        Returns:
            Fee rounded to the currency minor unit
        """
        return percent_of(amount, fee_percent)

    async def deduct_balance(self, user_id: int, total: Decimal) -> Decimal:
        """
        Deduct amount plus fee from the user's balance.

        Args:
            user_id: User ID
            total: Amount including fee

        Returns:
            Balance after deduction

        Raises:
            InsufficientBalanceError: If balance is lower than total
        """
        balance_after = await self.ledger.debit(user_id, total)
        logger.debug(
            "Withdrawal funds reserved",
            extra={"user_id": user_id, "total": str(total)},
        )
        return balance_after

    async def restore_balance(self, user_id: int, total: Decimal) -> Decimal:
        """
        Refund a withdrawal (amount plus fee) to the user.

        Args:
            user_id: User ID
            total: Amount including fee

        Returns:
            Balance after refund
        """
        balance_after = await self.ledger.credit(user_id, total)
        logger.info(
            "Withdrawal funds restored",
            extra={"user_id": user_id, "total": str(total)},
        )
        return balance_after

    async def get_pending_withdrawals_total(self, user_id: int) -> Decimal:
        """
        Sum of the user's pending withdrawal amounts (fees excluded).

        Args:
            user_id: User ID

        Returns:
            Pending total
        """
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.user_id == user_id,
            Transaction.type == TransactionType.WITHDRAWAL.value,
            Transaction.status == TransactionStatus.PENDING.value,
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))
