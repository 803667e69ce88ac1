"""
Referral system configuration.

Commission tiers are chosen by the referrer's number of active referrals.
The table can be overridden with the COMMISSION_TIERS setting.
"""

import json
from decimal import Decimal
from typing import NamedTuple

from app.config.business_constants import COMMISSION_DEPTH
from app.config.settings import settings


class CommissionTier(NamedTuple):
    """Commission tier configuration."""

    name: str
    rate: Decimal  # Fraction of the source amount (0.05 = 5%)
    min_referrals: int  # Active referrals required
    daily_cap: Decimal  # Max commission per business day


REFERRAL_DEPTH = COMMISSION_DEPTH

DEFAULT_COMMISSION_TIERS: tuple[CommissionTier, ...] = (
    CommissionTier(
        name="gold",
        rate=Decimal("0.10"),
        min_referrals=50,
        daily_cap=Decimal("5000"),
    ),
    CommissionTier(
        name="silver",
        rate=Decimal("0.07"),
        min_referrals=20,
        daily_cap=Decimal("2000"),
    ),
    CommissionTier(
        name="bronze",
        rate=Decimal("0.05"),
        min_referrals=5,
        daily_cap=Decimal("1000"),
    ),
)


def load_commission_tiers(raw: str | None = None) -> tuple[CommissionTier, ...]:
    """
    Build the tier table from a JSON string.

    Args:
        raw: JSON list of tier objects; empty uses the defaults

    Returns:
        Tiers ordered by rate, highest first

    Raises:
        ValueError: If an entry is malformed
    """
    raw = settings.commission_tiers if raw is None else raw
    if not raw:
        return DEFAULT_COMMISSION_TIERS

    tiers = []
    for item in json.loads(raw):
        try:
            tier = CommissionTier(
                name=str(item["name"]),
                rate=Decimal(str(item["rate"])),
                min_referrals=int(item["min_referrals"]),
                daily_cap=Decimal(str(item["daily_cap"])),
            )
        except (KeyError, TypeError, ArithmeticError) as exc:
            raise ValueError(f"Invalid commission tier entry: {item!r}") from exc
        if tier.rate <= 0 or tier.rate >= 1 or tier.min_referrals < 0:
            raise ValueError(f"Invalid commission tier values: {item!r}")
        tiers.append(tier)

    return tuple(sorted(tiers, key=lambda t: t.rate, reverse=True))


COMMISSION_TIERS = load_commission_tiers()


def tier_for(
    active_referrals: int,
    tiers: tuple[CommissionTier, ...] = COMMISSION_TIERS,
) -> CommissionTier | None:
    """
    Select the commission tier for a referrer.

    Tiers are checked from the highest rate down; the first tier whose
    minimum is met wins.

    Args:
        active_referrals: Number of the referrer's active referrals
        tiers: Tier table

    Returns:
        Matching tier or None when below every tier
    """
    for tier in sorted(tiers, key=lambda t: t.rate, reverse=True):
        if active_referrals >= tier.min_referrals:
            return tier
    return None
