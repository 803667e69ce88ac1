"""
Transaction repository.

Data access layer for Transaction model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import CAPPED_COMMISSION_TYPES, TransactionStatus, TransactionType
from app.models.transaction import Transaction
from app.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Transaction repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction repository."""
        super().__init__(Transaction, session)

    async def get_by_external_id(self, external_id: str) -> Transaction | None:
        """
        Get transaction by external payment id.

        Args:
            external_id: Deposit idempotency key

        Returns:
            Transaction or None
        """
        return await self.get_by(external_id=external_id)

    async def sum_commission_since(
        self, user_id: int, since: datetime
    ) -> Decimal:
        """
        Sum completed commission payouts received by a user since a moment.

        Args:
            user_id: Receiving user ID
            since: Inclusive lower bound on created_at

        Returns:
            Total paid (0 if none)
        """
        stmt = select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.user_id == user_id,
            Transaction.type.in_([t.value for t in CAPPED_COMMISSION_TYPES]),
            Transaction.status == TransactionStatus.COMPLETED.value,
            Transaction.created_at >= since,
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def has_daily_income_since(
        self, user_product_id: int, since: datetime
    ) -> bool:
        """
        Check whether a holding was already paid since a moment.

        Args:
            user_product_id: Holding ID
            since: Inclusive lower bound on created_at

        Returns:
            True if a daily_income transaction exists
        """
        stmt = (
            select(Transaction.id)
            .where(
                Transaction.user_product_id == user_product_id,
                Transaction.type == TransactionType.DAILY_INCOME.value,
                Transaction.created_at >= since,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def has_other_approved_deposit(
        self, user_id: int, exclude_id: int | None = None
    ) -> bool:
        """Check whether the user has an approved deposit other than exclude_id."""
        stmt = select(Transaction.id).where(
            Transaction.user_id == user_id,
            Transaction.type == TransactionType.DEPOSIT.value,
            Transaction.status == TransactionStatus.APPROVED.value,
        )
        if exclude_id is not None:
            stmt = stmt.where(Transaction.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    async def get_user_transactions(
        self,
        user_id: int,
        tx_type: str | None = None,
        limit: int = 50,
    ) -> list[Transaction]:
        """
        Get a user's transactions, newest first.

        Args:
            user_id: User ID
            tx_type: Optional type filter
            limit: Maximum rows

        Returns:
            List of transactions
        """
        stmt = select(Transaction).where(Transaction.user_id == user_id)
        if tx_type:
            stmt = stmt.where(Transaction.type == tx_type)
        stmt = stmt.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_commission_by_level(self) -> dict[int, Decimal]:
        """
        Sum completed commission payouts per referral level.

        Returns:
            Mapping of level to total amount
        """
        stmt = (
            select(Transaction.level, func.coalesce(func.sum(Transaction.amount), 0))
            .where(
                Transaction.type == TransactionType.REFERRAL_COMMISSION.value,
                Transaction.status == TransactionStatus.COMPLETED.value,
            )
            .group_by(Transaction.level)
        )
        result = await self.session.execute(stmt)
        return {
            level: Decimal(str(total))
            for level, total in result.all()
            if level is not None
        }
