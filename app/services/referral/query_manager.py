"""
Referral query management module.

Handles read-only views of a referrer's downline and commission history.
"""

from collections import OrderedDict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import REFERRAL_EARNINGS_HISTORY_DAYS
from app.config.settings import settings
from app.repositories.referral_earning_repository import (
    ReferralEarningRepository,
)
from app.repositories.referral_repository import ReferralRepository
from app.repositories.transaction_repository import TransactionRepository
from app.repositories.user_repository import UserRepository
from app.services.referral.config import COMMISSION_TIERS, CommissionTier, tier_for
from app.utils.datetime_utils import business_day_start, ensure_utc, utc_now
from app.utils.exceptions import NotFoundError


class ReferralQueryManager:
    """Manages referral query operations."""

    def __init__(
        self,
        session: AsyncSession,
        tiers: tuple[CommissionTier, ...] = COMMISSION_TIERS,
    ) -> None:
        """Initialize query manager."""
        self.session = session
        self.tiers = tiers
        self.referral_repo = ReferralRepository(session)
        self.earning_repo = ReferralEarningRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.user_repo = UserRepository(session)

    async def get_current_tier(self, user_id: int) -> CommissionTier | None:
        """
        Get the tier a referrer currently qualifies for.

        Evaluated from the live active referral count.
        """
        active = await self.referral_repo.count_active_by_referrer(user_id)
        return tier_for(active, self.tiers)

    async def get_referred_users(self, user_id: int) -> list[dict[str, Any]]:
        """
        Get direct referrals of a user.

        Args:
            user_id: Referrer user ID

        Returns:
            List of referral dicts, newest first
        """
        rows = await self.referral_repo.get_referred_users(user_id)
        return [
            {
                "referral_id": referral.id,
                "user_id": user.id,
                "email": referral.referred_email or user.email,
                "display_name": user.display_name,
                "status": referral.status,
                "has_deposited": referral.has_deposited,
                "has_purchased": referral.has_purchased,
                "total_earned": referral.total_earned,
                "joined_at": referral.created_at,
                "activated_at": referral.activated_at,
            }
            for referral, user in rows
        ]

    async def get_earnings_by_day(
        self,
        user_id: int,
        days: int = REFERRAL_EARNINGS_HISTORY_DAYS,
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """
        Sum a referrer's commission history per business day.

        Reversal entries are negative, so a day's total is net of
        claw-backs. Days without entries are reported as zero.

        Args:
            user_id: Referrer user ID
            days: Number of days including today
            now: Reference moment

        Returns:
            List of {"date", "amount", "count"} dicts, oldest first
        """
        now = ensure_utc(now) if now else utc_now()
        tz = ZoneInfo(settings.business_timezone)
        today = now.astimezone(tz).date()
        first_day = today - timedelta(days=days - 1)
        since = business_day_start(now) - timedelta(days=days - 1)

        buckets: OrderedDict[date, dict[str, Any]] = OrderedDict(
            (
                first_day + timedelta(days=i),
                {"date": first_day + timedelta(days=i), "amount": Decimal("0"), "count": 0},
            )
            for i in range(days)
        )

        entries = await self.earning_repo.get_referrer_entries_since(user_id, since)
        for entry in entries:
            day = ensure_utc(entry.created_at).astimezone(tz).date()
            bucket = buckets.get(day)
            if bucket is None:
                continue
            bucket["amount"] += Decimal(str(entry.amount))
            bucket["count"] += 1

        return list(buckets.values())

    async def get_referral_overview(
        self, user_id: int, now: datetime | None = None
    ) -> dict[str, Any]:
        """
        Build the referral dashboard of a user.

        Args:
            user_id: Referrer user ID
            now: Reference moment

        Returns:
            Dict with tier, counters, today's commission, referred users
            and earnings per day

        Raises:
            NotFoundError: If the user does not exist
        """
        now = ensure_utc(now) if now else utc_now()
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        active = await self.referral_repo.count_active_by_referrer(user_id)
        tier = tier_for(active, self.tiers)
        paid_today = await self.transaction_repo.sum_commission_since(
            user_id, business_day_start(now)
        )

        return {
            "user_id": user.id,
            "referral_code": user.referral_code,
            "tier": tier.name if tier else None,
            "rate": tier.rate if tier else Decimal("0"),
            "daily_cap": tier.daily_cap if tier else Decimal("0"),
            "paid_today": paid_today,
            "total_referrals": user.total_referrals,
            "active_referrals": active,
            "total_commission": user.total_commission,
            "referral_earnings": user.referral_earnings,
            "referred_users": await self.get_referred_users(user_id),
            "earnings_by_day": await self.get_earnings_by_day(user_id, now=now),
        }
