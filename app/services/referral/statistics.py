"""
Referral statistics module.

Platform-wide referral figures: edge status funnel, top referrers and
commission totals per level.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import TOP_REFERRERS_LIMIT
from app.models.enums import ReferralStatus
from app.repositories.referral_repository import ReferralRepository
from app.repositories.transaction_repository import TransactionRepository
from app.repositories.user_repository import UserRepository


class ReferralStatisticsManager:
    """Manages referral statistics and analytics."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize statistics manager."""
        self.session = session
        self.referral_repo = ReferralRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.user_repo = UserRepository(session)

    async def get_top_referrers(
        self, limit: int = TOP_REFERRERS_LIMIT
    ) -> list[dict[str, Any]]:
        """
        Get referrers ranked by accrued commission.

        Args:
            limit: Number of rows

        Returns:
            List of dicts with user id, email, active count and earnings
        """
        rows = await self.referral_repo.get_top_referrers(limit)
        leaderboard = []
        for rank, (referrer_id, active_count, earned) in enumerate(rows, start=1):
            user = await self.user_repo.get_by_id(referrer_id)
            leaderboard.append(
                {
                    "rank": rank,
                    "user_id": referrer_id,
                    "email": user.email if user else None,
                    "active_referrals": active_count,
                    "total_earned": earned,
                }
            )
        return leaderboard

    async def get_platform_stats(self) -> dict[str, Any]:
        """
        Get platform-wide referral statistics.

        Returns:
            Dict with status counts, conversion rate, commission per level
            and top referrers
        """
        counts = await self.referral_repo.get_status_counts()
        pending = counts.get(ReferralStatus.PENDING.value, 0)
        active = counts.get(ReferralStatus.ACTIVE.value, 0)
        total = pending + active

        conversion = (
            (Decimal(active) * 100 / Decimal(total)).quantize(Decimal("0.01"))
            if total
            else Decimal("0")
        )
        by_level = await self.transaction_repo.get_commission_by_level()

        return {
            "total_referrals": total,
            "pending_referrals": pending,
            "active_referrals": active,
            "conversion_percent": conversion,
            "commission_by_level": by_level,
            "total_commission": sum(by_level.values(), Decimal("0")),
            "top_referrers": await self.get_top_referrers(),
        }
