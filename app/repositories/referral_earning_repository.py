"""
Referral earning repository.

Data access layer for ReferralEarning model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.referral import Referral
from app.models.referral_earning import ReferralEarning
from app.repositories.base import BaseRepository


class ReferralEarningRepository(BaseRepository[ReferralEarning]):
    """Referral earning repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral earning repository."""
        super().__init__(ReferralEarning, session)

    async def get_history(self, referral_id: int) -> list[ReferralEarning]:
        """
        Get an edge's commission history in insertion order.

        Args:
            referral_id: Referral edge ID

        Returns:
            Ordered list of entries
        """
        stmt = (
            select(ReferralEarning)
            .where(ReferralEarning.referral_id == referral_id)
            .order_by(ReferralEarning.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_referrer_entries_since(
        self, referrer_id: int, since: datetime
    ) -> list[ReferralEarning]:
        """
        Get history entries of all edges owned by a referrer since a moment.

        Args:
            referrer_id: Referrer user ID
            since: Inclusive lower bound on created_at

        Returns:
            Entries, oldest first
        """
        stmt = (
            select(ReferralEarning)
            .join(Referral, Referral.id == ReferralEarning.referral_id)
            .where(
                Referral.referrer_id == referrer_id,
                ReferralEarning.created_at >= since,
            )
            .order_by(ReferralEarning.created_at.asc(), ReferralEarning.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_for_referral(self, referral_id: int) -> Decimal:
        """Sum the signed history of an edge."""
        stmt = select(func.coalesce(func.sum(ReferralEarning.amount), 0)).where(
            ReferralEarning.referral_id == referral_id
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))
