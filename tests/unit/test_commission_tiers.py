"""
Unit tests for commission tier selection.

Tests tier lookup by active referral count and parsing of the
COMMISSION_TIERS override.
"""

import json
from decimal import Decimal

import pytest

from app.services.referral.config import (
    DEFAULT_COMMISSION_TIERS,
    CommissionTier,
    load_commission_tiers,
    tier_for,
)


class TestTierFor:
    """Test tier selection by active referral count."""

    @pytest.mark.parametrize(
        "active,expected",
        [
            (5, "bronze"),
            (19, "bronze"),
            (20, "silver"),
            (49, "silver"),
            (50, "gold"),
            (500, "gold"),
        ],
    )
    def test_default_tier_boundaries(self, active, expected):
        """Each threshold selects its tier inclusively."""
        tier = tier_for(active, DEFAULT_COMMISSION_TIERS)
        assert tier is not None
        assert tier.name == expected

    def test_below_lowest_tier(self):
        """Referrers under every minimum get no tier."""
        assert tier_for(4, DEFAULT_COMMISSION_TIERS) is None
        assert tier_for(0, DEFAULT_COMMISSION_TIERS) is None

    def test_highest_rate_wins_regardless_of_order(self):
        """Tiers are checked from highest rate down even if given unsorted."""
        tiers = (
            CommissionTier("low", Decimal("0.01"), 0, Decimal("10")),
            CommissionTier("high", Decimal("0.20"), 3, Decimal("10")),
        )
        assert tier_for(3, tiers).name == "high"
        assert tier_for(2, tiers).name == "low"

    def test_default_rates_and_caps(self):
        """Built-in table carries the documented rates and caps."""
        by_name = {t.name: t for t in DEFAULT_COMMISSION_TIERS}
        assert by_name["gold"].rate == Decimal("0.10")
        assert by_name["gold"].daily_cap == Decimal("5000")
        assert by_name["silver"].rate == Decimal("0.07")
        assert by_name["silver"].daily_cap == Decimal("2000")
        assert by_name["bronze"].rate == Decimal("0.05")
        assert by_name["bronze"].daily_cap == Decimal("1000")


class TestLoadCommissionTiers:
    """Test parsing of the tier override."""

    def test_empty_uses_defaults(self):
        """Empty string falls back to the built-in table."""
        assert load_commission_tiers("") == DEFAULT_COMMISSION_TIERS

    def test_parses_and_sorts_by_rate(self):
        """Entries are parsed to Decimal and ordered highest rate first."""
        raw = json.dumps(
            [
                {"name": "starter", "rate": "0.02", "min_referrals": 1, "daily_cap": "100"},
                {"name": "pro", "rate": 0.08, "min_referrals": 10, "daily_cap": 900},
            ]
        )
        tiers = load_commission_tiers(raw)
        assert [t.name for t in tiers] == ["pro", "starter"]
        assert tiers[0].rate == Decimal("0.08")
        assert tiers[0].daily_cap == Decimal("900")
        assert tiers[1].min_referrals == 1

    def test_missing_key_rejected(self):
        """An entry without a daily cap is invalid."""
        raw = json.dumps([{"name": "x", "rate": "0.05", "min_referrals": 1}])
        with pytest.raises(ValueError, match="Invalid commission tier entry"):
            load_commission_tiers(raw)

    @pytest.mark.parametrize("rate", ["0", "1", "-0.1"])
    def test_rate_must_be_a_fraction(self, rate):
        """Rates outside (0, 1) are rejected."""
        raw = json.dumps(
            [{"name": "x", "rate": rate, "min_referrals": 1, "daily_cap": "10"}]
        )
        with pytest.raises(ValueError, match="Invalid commission tier values"):
            load_commission_tiers(raw)
