"""
User statistics functionality.

Handles account summaries and balance figures.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.product_repository import UserProductRepository
from app.repositories.referral_repository import ReferralRepository
from app.repositories.user_repository import UserRepository
from app.services.withdrawal.withdrawal_balance_manager import (
    WithdrawalBalanceManager,
)
from app.utils.exceptions import NotFoundError


class UserStatisticsMixin:
    """
    Mixin for user statistics functionality.

    Provides methods for retrieving account summaries.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user statistics mixin."""
        self.session = session
        self.user_repo = UserRepository(session)
        self.balance_manager = WithdrawalBalanceManager(session)

    async def get_account_summary(self, user_id: int) -> dict[str, Any]:
        """
        Get balance and aggregate figures of an account.

        Args:
            user_id: User ID

        Returns:
            Summary dict

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        holdings = await UserProductRepository(self.session).get_active_for_user(
            user_id
        )
        referral_repo = ReferralRepository(self.session)
        active_referrals = await referral_repo.count_active_by_referrer(user_id)
        pending_withdrawals = (
            await self.balance_manager.get_pending_withdrawals_total(user_id)
        )

        return {
            "user_id": user.id,
            "email": user.email,
            "referral_code": user.referral_code,
            "balance": user.balance,
            "total_deposited": user.total_deposited,
            "total_commission": user.total_commission,
            "referral_earnings": user.referral_earnings,
            "pending_withdrawals": pending_withdrawals,
            "active_holdings": len(holdings),
            "daily_income": sum(
                (h.daily_income for h in holdings), Decimal("0")
            ),
            "total_referrals": user.total_referrals,
            "active_referrals": active_referrals,
            "pending_referrals": user.total_referrals - active_referrals,
        }
