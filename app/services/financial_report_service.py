"""
Financial Report Service.

Provides platform-wide financial figures for operators.
Includes DTOs for type-safe data transfer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import HoldingStatus, TransactionStatus, TransactionType
from app.models.transaction import Transaction
from app.models.user import User
from app.models.user_product import UserProduct
from app.services.referral.statistics import ReferralStatisticsManager


@dataclass
class PlatformFinancialStatsDTO:
    """Platform-wide financial statistics."""
    total_users: int
    active_users: int
    total_balance: Decimal

    # Deposit stats
    approved_deposits_count: int
    approved_deposits_amount: Decimal
    pending_deposits_count: int

    # Withdrawal stats
    approved_withdrawals_count: int
    approved_withdrawals_amount: Decimal
    withdrawal_fees: Decimal
    pending_withdrawals_count: int
    pending_withdrawals_amount: Decimal

    # Income and commission stats
    total_daily_income_paid: Decimal
    active_holdings_count: int
    total_commission_paid: Decimal
    commission_by_level: dict[int, Decimal] = field(default_factory=dict)
    referral_status_counts: dict[str, int] = field(default_factory=dict)
    top_referrers: list[dict] = field(default_factory=list)


class FinancialReportService:
    """Service for generating financial reports and summaries."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.referral_stats = ReferralStatisticsManager(session)

    async def _count_and_sum(
        self, tx_type: TransactionType, status: TransactionStatus
    ) -> tuple[int, Decimal, Decimal]:
        """Count transactions of a type and status and sum amount and fee."""
        stmt = select(
            func.count(Transaction.id).label('count'),
            func.coalesce(func.sum(Transaction.amount), 0).label('amount'),
            func.coalesce(func.sum(Transaction.fee), 0).label('fee'),
        ).where(
            (Transaction.type == tx_type.value) &
            (Transaction.status == status.value)
        )
        row = (await self.session.execute(stmt)).one()
        return row.count or 0, Decimal(str(row.amount)), Decimal(str(row.fee))

    async def get_platform_financial_stats(self) -> PlatformFinancialStatsDTO:
        """
        Get platform-wide financial statistics.

        Returns comprehensive financial overview including:
        - User counts and total balance held
        - Deposit and withdrawal statistics (approved, pending)
        - Daily income paid and active holdings
        - Commission totals per level, referral funnel and top referrers
        """
        users_stmt = select(
            func.count(User.id).label('total'),
            func.coalesce(func.sum(User.balance), 0).label('balance'),
        )
        users = (await self.session.execute(users_stmt)).one()

        active_users_stmt = select(func.count(User.id)).where(User.is_active.is_(True))
        active_users = (await self.session.execute(active_users_stmt)).scalar() or 0

        dep_count, dep_amount, _ = await self._count_and_sum(
            TransactionType.DEPOSIT, TransactionStatus.APPROVED
        )
        pending_dep_count, _, _ = await self._count_and_sum(
            TransactionType.DEPOSIT, TransactionStatus.PENDING
        )
        wd_count, wd_amount, wd_fees = await self._count_and_sum(
            TransactionType.WITHDRAWAL, TransactionStatus.APPROVED
        )
        pending_wd_count, pending_wd_amount, _ = await self._count_and_sum(
            TransactionType.WITHDRAWAL, TransactionStatus.PENDING
        )
        _, daily_income_paid, _ = await self._count_and_sum(
            TransactionType.DAILY_INCOME, TransactionStatus.COMPLETED
        )

        holdings_stmt = select(func.count(UserProduct.id)).where(
            UserProduct.status == HoldingStatus.ACTIVE.value
        )
        active_holdings = (await self.session.execute(holdings_stmt)).scalar() or 0

        referral = await self.referral_stats.get_platform_stats()

        return PlatformFinancialStatsDTO(
            total_users=users.total or 0,
            active_users=active_users,
            total_balance=Decimal(str(users.balance)),
            approved_deposits_count=dep_count,
            approved_deposits_amount=dep_amount,
            pending_deposits_count=pending_dep_count,
            approved_withdrawals_count=wd_count,
            approved_withdrawals_amount=wd_amount,
            withdrawal_fees=wd_fees,
            pending_withdrawals_count=pending_wd_count,
            pending_withdrawals_amount=pending_wd_amount,
            total_daily_income_paid=daily_income_paid,
            active_holdings_count=active_holdings,
            total_commission_paid=referral["total_commission"],
            commission_by_level=referral["commission_by_level"],
            referral_status_counts={
                "pending": referral["pending_referrals"],
                "active": referral["active_referrals"],
            },
            top_referrers=referral["top_referrers"],
        )
