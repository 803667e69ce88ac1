"""
Integration tests for referral edge registration and queries.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.models.enums import ReferralStatus
from app.services.approval_service import ApprovalService
from app.services.referral_service import ReferralService
from app.utils.exceptions import NotFoundError


class TestRegisterReferral:
    """Test edge creation and its rejections."""

    @pytest.mark.asyncio
    async def test_creates_pending_edge(self, db_session, factory, reader):
        """A valid code creates one pending edge and bumps the counter."""
        referrer = await factory.user()
        referred = await factory.user()

        result = await ReferralService(db_session).register_referral(
            referred.id, referrer.referral_code.lower()
        )

        assert result.success, result.error
        edge = await reader.referral(referred.id)
        assert edge.referrer_id == referrer.id
        assert edge.status == ReferralStatus.PENDING.value
        assert edge.has_deposited is False
        assert edge.total_earned == Decimal("0")
        assert (await reader.user(referrer.id)).total_referrals == 1

    @pytest.mark.asyncio
    async def test_already_referred(self, db_session, factory, reader):
        """A user can have only one referrer."""
        first = await factory.user()
        second = await factory.user()
        referred = await factory.user()
        first_id, referred_id = first.id, referred.id
        second_code = second.referral_code
        service = ReferralService(db_session)
        await service.register_referral(referred_id, first.referral_code)

        result = await service.register_referral(referred_id, second_code)

        assert result.error_code == "ALREADY_REFERRED"
        assert (await reader.referral(referred_id)).referrer_id == first_id

    @pytest.mark.asyncio
    async def test_self_referral(self, db_session, factory, reader):
        """A user's own code is rejected."""
        user = await factory.user()
        user_id = user.id

        result = await ReferralService(db_session).register_referral(
            user_id, user.referral_code
        )

        assert result.error_code == "SELF_REFERRAL_NOT_ALLOWED"
        assert await reader.referral(user_id) is None

    @pytest.mark.asyncio
    async def test_invalid_code(self, db_session, factory):
        """Unknown codes are rejected."""
        user = await factory.user()

        result = await ReferralService(db_session).register_referral(user.id, "NOPE1234")

        assert result.error_code == "INVALID_REFERRAL_CODE"

    @pytest.mark.asyncio
    async def test_empty_code(self, db_session, factory):
        """Blank codes are validation errors."""
        user = await factory.user()

        result = await ReferralService(db_session).register_referral(user.id, "   ")

        assert result.error_code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_loop_rejected(self, db_session, factory, reader):
        """An edge that would close a cycle is rejected."""
        top = await factory.user()
        middle = await factory.user()
        bottom = await factory.user()
        top_id = top.id
        await factory.edge(top, middle)
        await factory.edge(middle, bottom)

        result = await ReferralService(db_session).register_referral(
            top_id, bottom.referral_code
        )

        assert result.error_code == "VALIDATION_ERROR"
        assert "loop" in result.error
        assert await reader.referral(top_id) is None

    @pytest.mark.asyncio
    async def test_upline_nearest_first(self, db_session, factory):
        """Upline is returned from the direct referrer upwards."""
        a = await factory.user()
        b = await factory.user()
        c = await factory.user()
        await factory.edge(a, b)
        await factory.edge(b, c)

        upline = await ReferralService(db_session).get_upline(c.id)

        assert upline == [b.id, a.id]


class TestReferralOverview:
    """Test the referral dashboard."""

    @pytest.mark.asyncio
    async def test_overview_after_commission(self, db_session, factory, now):
        """Overview reports tier, today's commission and earnings per day."""
        referrer = await factory.user()
        referrer_id = referrer.id
        friends = await factory.active_referrals(referrer, 5)
        depositor_id = friends[0].id

        approvals = ApprovalService(db_session)
        deposit_id = (
            await approvals.submit_deposit(depositor_id, Decimal("400"), "TRX-OV", "bkash")
        ).data.id
        await approvals.set_transaction_status(deposit_id, "approved", 1, now=now)

        service = ReferralService(db_session)
        overview = await service.get_referral_overview(referrer_id, now=now)

        assert overview["tier"] == "bronze"
        assert overview["rate"] == Decimal("0.05")
        assert overview["active_referrals"] == 5
        assert overview["paid_today"] == Decimal("20")
        assert len(overview["referred_users"]) == 5

        days = overview["earnings_by_day"]
        assert len(days) == 30
        assert days[-1]["amount"] == Decimal("20")
        assert days[-1]["count"] == 1
        assert days[-2]["amount"] == Decimal("0")

        # Paid today does not count towards the next business day
        tomorrow = await service.get_referral_overview(
            referrer_id, now=now + timedelta(days=1)
        )
        assert tomorrow["paid_today"] == Decimal("0")

    @pytest.mark.asyncio
    async def test_overview_unknown_user(self, db_session):
        """Unknown users raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await ReferralService(db_session).get_referral_overview(999)

    @pytest.mark.asyncio
    async def test_commission_history(self, db_session, factory, now):
        """History lists one entry per commission on the edge."""
        referrer = await factory.user()
        friends = await factory.active_referrals(referrer, 5)
        depositor_id = friends[0].id

        approvals = ApprovalService(db_session)
        for n, amount in enumerate(("100", "300")):
            deposit_id = (
                await approvals.submit_deposit(
                    depositor_id, Decimal(amount), f"TRX-H{n}", "bkash"
                )
            ).data.id
            await approvals.set_transaction_status(deposit_id, "approved", 1, now=now)

        service = ReferralService(db_session)
        edge = await service.chain_manager.referral_repo.get_by_referred_user(depositor_id)
        history = await service.get_commission_history(edge.id)

        assert [entry.amount for entry in history] == [Decimal("5"), Decimal("15")]
        assert all(entry.level == 1 for entry in history)
