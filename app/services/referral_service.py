"""
Referral service - Main service facade.

Entry point for referral registration, tier lookup and referral
dashboards. Commission payouts are triggered by the approval workflow
and product purchases, not from here.

Module structure:
- referral/config: commission tier table and tier selection
- referral/chain_manager: edge registration and activation
- referral/commission_engine: multi-level commission walk
- referral/query_manager: downline and earnings views
- referral/statistics: platform-wide referral figures
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.referral_earning_repository import (
    ReferralEarningRepository,
)
from app.services.base_service import BaseService, service_operation
from app.services.referral.chain_manager import ReferralChainManager
from app.services.referral.config import CommissionTier
from app.services.referral.query_manager import ReferralQueryManager
from app.services.referral.statistics import ReferralStatisticsManager


class ReferralService(BaseService):
    """
    Referral service.

    This is a facade that delegates to specialized managers.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral service and all sub-components."""
        super().__init__(session)

        self.chain_manager = ReferralChainManager(session)
        self.query_manager = ReferralQueryManager(session)
        self.statistics = ReferralStatisticsManager(session)
        self.earning_repo = ReferralEarningRepository(session)

    @service_operation
    async def register_referral(
        self,
        referred_user_id: int,
        referrer_code: str,
        referred_email: str | None = None,
    ):
        """
        Attach an existing user to the owner of a referral code.

        Args:
            referred_user_id: User being referred
            referrer_code: Inviter's referral code
            referred_email: Optional email snapshot

        Returns:
            ServiceResult with the pending Referral
        """
        return await self.chain_manager.register_edge(
            referred_user_id, referrer_code, referred_email
        )

    async def get_upline(self, user_id: int) -> list[int]:
        """Get referrer IDs above a user, nearest first."""
        return await self.chain_manager.get_upline_ids(user_id)

    async def get_tier_for_user(self, user_id: int) -> CommissionTier | None:
        """Get the commission tier a user currently qualifies for."""
        return await self.query_manager.get_current_tier(user_id)

    async def get_referral_overview(
        self, user_id: int, now: datetime | None = None
    ) -> dict:
        """
        Get referral dashboard of a user.

        Raises:
            NotFoundError: If the user does not exist
        """
        return await self.query_manager.get_referral_overview(user_id, now=now)

    async def get_commission_history(self, referral_id: int) -> list:
        """Get an edge's commission history in insertion order."""
        return await self.earning_repo.get_history(referral_id)

    async def get_platform_referral_stats(self) -> dict:
        """Get platform-wide referral figures."""
        return await self.statistics.get_platform_stats()
