"""
Income queries.

Read-only views of a user's holdings and daily income history.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import TransactionType
from app.repositories.product_repository import UserProductRepository
from app.repositories.transaction_repository import TransactionRepository


class IncomeQueryManager:
    """Builds income history views."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize income query manager."""
        self.session = session
        self.holding_repo = UserProductRepository(session)
        self.transaction_repo = TransactionRepository(session)

    async def get_user_income_history(
        self, user_id: int, limit: int = 30
    ) -> dict[str, Any]:
        """
        Get active holdings and recent daily income payouts of a user.

        Args:
            user_id: User ID
            limit: Maximum number of payout records

        Returns:
            Dict with holdings, totals and recent payouts
        """
        holdings = await self.holding_repo.get_active_for_user(user_id)
        payouts = await self.transaction_repo.get_user_transactions(
            user_id, tx_type=TransactionType.DAILY_INCOME.value, limit=limit
        )

        return {
            "holdings": [
                {
                    "id": h.id,
                    "product_name": h.product_name,
                    "daily_income": h.daily_income,
                    "total_earned": h.total_earned,
                    "remaining_days": h.remaining_days,
                    "total_days": h.total_days,
                    "purchase_date": h.purchase_date,
                    "last_payment_date": h.last_payment_date,
                }
                for h in holdings
            ],
            "total_daily_income": sum(
                (h.daily_income for h in holdings), Decimal("0")
            ),
            "total_earned": sum((h.total_earned for h in holdings), Decimal("0")),
            "recent_payouts": [
                {
                    "id": tx.id,
                    "amount": tx.amount,
                    "holding_id": tx.user_product_id,
                    "description": tx.description,
                    "created_at": tx.created_at,
                }
                for tx in payouts
            ],
        }
