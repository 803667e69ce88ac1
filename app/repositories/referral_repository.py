"""
Referral repository.

Data access layer for Referral model.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ReferralStatus
from app.models.referral import Referral
from app.models.user import User
from app.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[Referral]):
    """Referral repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(Referral, session)

    async def get_by_referred_user(
        self,
        referred_user_id: int,
        status: str | None = None,
    ) -> Referral | None:
        """
        Get the incoming edge of a user.

        Args:
            referred_user_id: Referred user ID
            status: Optional status filter

        Returns:
            Referral or None
        """
        filters: dict[str, object] = {"referred_user_id": referred_user_id}
        if status:
            filters["status"] = status
        return await self.get_by(**filters)

    async def get_by_referrer(
        self, referrer_id: int, status: str | None = None
    ) -> list[Referral]:
        """
        Get outgoing edges of a referrer.

        Args:
            referrer_id: Referrer user ID
            status: Optional status filter

        Returns:
            List of referrals, newest first
        """
        stmt = select(Referral).where(Referral.referrer_id == referrer_id)
        if status:
            stmt = stmt.where(Referral.status == status)
        stmt = stmt.order_by(Referral.created_at.desc(), Referral.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_active_by_referrer(self, referrer_id: int) -> int:
        """
        Count active referrals of a referrer.

        Args:
            referrer_id: Referrer user ID

        Returns:
            Number of active edges
        """
        return await self.count(
            referrer_id=referrer_id, status=ReferralStatus.ACTIVE.value
        )

    async def get_referrer_id(self, referred_user_id: int) -> int | None:
        """Return the referrer of a user, or None when the user has no edge."""
        stmt = select(Referral.referrer_id).where(
            Referral.referred_user_id == referred_user_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def activate_pending(
        self,
        referred_user_id: int,
        amount: Decimal,
        activated_at: datetime,
        **flags: bool,
    ) -> int:
        """
        Activate a pending edge in a single conditional UPDATE.

        Args:
            referred_user_id: Referred user ID
            amount: Qualifying amount
            activated_at: Activation timestamp
            **flags: has_deposited / has_purchased values to set

        Returns:
            Number of rows updated (0 or 1)
        """
        stmt = (
            update(Referral)
            .where(
                Referral.referred_user_id == referred_user_id,
                Referral.status == ReferralStatus.PENDING.value,
            )
            .values(
                status=ReferralStatus.ACTIVE.value,
                activation_amount=amount,
                activated_at=activated_at,
                **flags,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def set_flags(self, referral_id: int, **flags: bool) -> None:
        """Set activation flags on an edge without changing its status."""
        stmt = (
            update(Referral)
            .where(Referral.id == referral_id)
            .values(**flags)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)

    async def add_total_earned(self, referral_id: int, amount: Decimal) -> None:
        """Atomically add a (signed) amount to the edge accrual."""
        stmt = (
            update(Referral)
            .where(Referral.id == referral_id)
            .values(total_earned=Referral.total_earned + amount)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.execute(stmt)

    async def get_referred_users(
        self, referrer_id: int
    ) -> list[tuple[Referral, User]]:
        """
        Get direct referrals joined with the referred users.

        Args:
            referrer_id: Referrer user ID

        Returns:
            List of (referral, user) pairs, newest first
        """
        stmt = (
            select(Referral, User)
            .join(User, User.id == Referral.referred_user_id)
            .where(Referral.referrer_id == referrer_id)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def get_status_counts(self) -> dict[str, int]:
        """
        Count edges per status across the platform.

        Returns:
            Mapping of status to count
        """
        stmt = select(Referral.status, func.count(Referral.id)).group_by(
            Referral.status
        )
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def get_top_referrers(
        self, limit: int
    ) -> list[tuple[int, int, Decimal]]:
        """
        Get referrers ranked by accrued commission.

        Args:
            limit: Maximum number of rows

        Returns:
            List of (referrer_id, active_count, total_earned)
        """
        active_count = func.sum(
            case((Referral.status == ReferralStatus.ACTIVE.value, 1), else_=0)
        )
        total = func.coalesce(func.sum(Referral.total_earned), 0)
        stmt = (
            select(Referral.referrer_id, active_count, total)
            .group_by(Referral.referrer_id)
            .order_by(total.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [
            (referrer_id, int(count or 0), Decimal(str(earned)))
            for referrer_id, count, earned in result.all()
        ]
