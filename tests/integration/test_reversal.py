"""
Integration tests for reversal and removal of approved transactions.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from app.models.enums import ReferralStatus, TransactionStatus, TransactionType
from app.models.referral_earning import ReferralEarning
from app.services.approval_service import ApprovalService
from app.services.ledger.ledger_service import LedgerService
from app.services.product_service import ProductService


async def approved_deposit_with_commission(session, factory, now):
    """
    Approve a first deposit of 1000 that activates a bronze referrer.

    Returns:
        Tuple of (deposit_id, depositor_id, referrer_id)
    """
    referrer = await factory.user()
    await factory.active_referrals(referrer, 4)
    depositor = await factory.user()
    await factory.edge(referrer, depositor, status=ReferralStatus.PENDING)
    referrer_id, depositor_id = referrer.id, depositor.id

    service = ApprovalService(session)
    deposit_id = (
        await service.submit_deposit(depositor_id, Decimal("1000"), "TRX-R1", "bkash")
    ).data.id
    result = await service.set_transaction_status(deposit_id, "approved", 1, now=now)
    assert result.success, result.error
    return deposit_id, depositor_id, referrer_id


class TestReverseDeposit:
    """Test reversal of an approved deposit."""

    @pytest.mark.asyncio
    async def test_reverses_every_effect(self, db_session, factory, reader, now):
        """Balance, commission and activation are all undone."""
        deposit_id, depositor_id, referrer_id = await approved_deposit_with_commission(
            db_session, factory, now
        )

        result = await ApprovalService(db_session).reverse_transaction(
            deposit_id, admin_id=2, reason="chargeback", now=now
        )

        assert result.success, result.error
        reversal = result.data
        assert reversal.effects_reversed == 3
        assert reversal.commissions_clawed_back == Decimal("50")

        deposit = await reader.transaction(deposit_id)
        assert deposit.status == TransactionStatus.REVERSED.value
        assert "chargeback" in deposit.description

        depositor = await reader.user(depositor_id)
        assert depositor.balance == Decimal("0")
        assert depositor.total_deposited == Decimal("0")

        referrer = await reader.user(referrer_id)
        assert referrer.balance == Decimal("0")
        assert referrer.total_commission == Decimal("0")
        assert referrer.referral_earnings == Decimal("0")

        [commission] = await reader.transactions(
            user_id=referrer_id, type=TransactionType.REFERRAL_COMMISSION.value
        )
        assert commission.status == TransactionStatus.REVERSED.value

        reversal_rows = await reader.transactions(type=TransactionType.REVERSAL.value)
        assert sorted(tx.amount for tx in reversal_rows) == [
            Decimal("-1000"),
            Decimal("-50"),
        ]

        edge = await reader.referral(depositor_id)
        assert edge.status == ReferralStatus.PENDING.value
        assert edge.has_deposited is False
        assert edge.activated_at is None
        assert edge.total_earned == Decimal("0")

        # History keeps the payout and appends a negative entry
        stmt = (
            select(ReferralEarning.amount)
            .where(ReferralEarning.referral_id == edge.id)
            .order_by(ReferralEarning.id)
        )
        amounts = list((await db_session.execute(stmt)).scalars().all())
        assert amounts == [Decimal("50"), Decimal("-50")]

    @pytest.mark.asyncio
    async def test_edge_stays_active_with_other_deposit(
        self, db_session, factory, reader, now
    ):
        """Another approved deposit keeps the edge active after reversal."""
        deposit_id, depositor_id, referrer_id = await approved_deposit_with_commission(
            db_session, factory, now
        )
        service = ApprovalService(db_session)
        second_id = (
            await service.submit_deposit(depositor_id, Decimal("500"), "TRX-R2", "bkash")
        ).data.id
        assert (await service.set_transaction_status(second_id, "approved", 1, now=now)).success

        result = await service.reverse_transaction(deposit_id, admin_id=2, now=now)

        assert result.success, result.error
        edge = await reader.referral(depositor_id)
        assert edge.status == ReferralStatus.ACTIVE.value
        assert edge.has_deposited is True
        assert edge.activated_at is not None
        assert await reader.balance(depositor_id) == Decimal("500")
        assert await reader.balance(referrer_id) == Decimal("25")

    @pytest.mark.asyncio
    async def test_edge_stays_active_after_purchase(
        self, db_session, factory, reader, now
    ):
        """A purchase made after activation keeps the edge active."""
        deposit_id, depositor_id, _ = await approved_deposit_with_commission(
            db_session, factory, now
        )
        await LedgerService(db_session).credit(depositor_id, Decimal("1000"))
        await db_session.commit()
        product = await factory.product(price="500")
        assert (
            await ProductService(db_session).purchase_product(
                depositor_id, product.id, now=now
            )
        ).success

        result = await ApprovalService(db_session).reverse_transaction(
            deposit_id, admin_id=2, now=now
        )

        assert result.success, result.error
        edge = await reader.referral(depositor_id)
        assert edge.status == ReferralStatus.ACTIVE.value
        assert edge.has_purchased is True
        assert edge.has_deposited is False
        assert await reader.balance(depositor_id) == Decimal("500")

    @pytest.mark.asyncio
    async def test_insufficient_funds_changes_nothing(
        self, db_session, factory, reader, now
    ):
        """If the referrer spent the commission the reversal is refused."""
        deposit_id, depositor_id, referrer_id = await approved_deposit_with_commission(
            db_session, factory, now
        )
        await LedgerService(db_session).debit(referrer_id, Decimal("30"))
        await db_session.commit()

        result = await ApprovalService(db_session).reverse_transaction(
            deposit_id, admin_id=2, now=now
        )

        assert result.error_code == "INSUFFICIENT_BALANCE"
        assert (await reader.transaction(deposit_id)).status == "approved"
        assert await reader.balance(depositor_id) == Decimal("1000")
        assert await reader.balance(referrer_id) == Decimal("20")
        edge = await reader.referral(depositor_id)
        assert edge.status == ReferralStatus.ACTIVE.value
        assert edge.total_earned == Decimal("50")
        assert await reader.transactions(type=TransactionType.REVERSAL.value) == []

    @pytest.mark.asyncio
    async def test_only_approved_can_be_reversed(self, db_session, factory):
        """Pending deposits are not reversible."""
        user = await factory.user()
        service = ApprovalService(db_session)
        deposit_id = (
            await service.submit_deposit(user.id, Decimal("100"), "TRX-R2", "bkash")
        ).data.id

        result = await service.reverse_transaction(deposit_id, admin_id=2)

        assert result.error_code == "INVALID_STATUS_TRANSITION"

    @pytest.mark.asyncio
    async def test_reverse_twice(self, db_session, factory, now):
        """A reversed deposit cannot be reversed again."""
        deposit_id, _, _ = await approved_deposit_with_commission(
            db_session, factory, now
        )
        service = ApprovalService(db_session)
        await service.reverse_transaction(deposit_id, admin_id=2, now=now)

        result = await service.reverse_transaction(deposit_id, admin_id=2, now=now)

        assert result.error_code == "INVALID_STATUS_TRANSITION"


class TestReverseWithdrawal:
    """Test reversal of an approved withdrawal."""

    @pytest.mark.asyncio
    async def test_returns_reserved_funds(self, db_session, factory, reader, now):
        """Reversing an approved withdrawal credits amount and fee back."""
        user = await factory.user(balance="300")
        user_id = user.id
        method = await factory.payment_method(user)
        service = ApprovalService(db_session)
        tx_id = (
            await service.submit_withdrawal(user_id, Decimal("200"), method.id, now=now)
        ).data.id
        await service.set_withdrawal_status(tx_id, "approved", 1, now=now)

        result = await service.reverse_transaction(tx_id, admin_id=2, now=now)

        assert result.success, result.error
        assert await reader.balance(user_id) == Decimal("300")
        assert (await reader.transaction(tx_id)).status == "reversed"


class TestDeleteTransaction:
    """Test the removal policy."""

    @pytest.mark.asyncio
    async def test_pending_deposit_is_deleted(self, db_session, factory, reader):
        """Pending deposits are removed outright."""
        user = await factory.user()
        service = ApprovalService(db_session)
        deposit_id = (
            await service.submit_deposit(user.id, Decimal("100"), "TRX-D1", "bkash")
        ).data.id

        result = await service.delete_transaction(deposit_id, admin_id=2)

        assert result.success, result.error
        assert result.data == {"deleted": True, "reversal": None}
        assert await reader.transaction(deposit_id) is None

    @pytest.mark.asyncio
    async def test_approved_deposit_is_reversed(self, db_session, factory, reader, now):
        """Approved deposits are reversed and kept for audit."""
        deposit_id, depositor_id, _ = await approved_deposit_with_commission(
            db_session, factory, now
        )

        result = await ApprovalService(db_session).delete_transaction(deposit_id, admin_id=2)

        assert result.success, result.error
        assert result.data["deleted"] is False
        assert result.data["reversal"].effects_reversed == 3
        assert (await reader.transaction(deposit_id)).status == "reversed"
        assert await reader.balance(depositor_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_pending_withdrawal_must_be_rejected_first(
        self, db_session, factory, reader, now
    ):
        """Deleting a pending withdrawal would lose the reserved funds."""
        user = await factory.user(balance="300")
        user_id = user.id
        method = await factory.payment_method(user)
        service = ApprovalService(db_session)
        tx_id = (
            await service.submit_withdrawal(user_id, Decimal("200"), method.id, now=now)
        ).data.id

        result = await service.delete_transaction(tx_id, admin_id=2)

        assert result.error_code == "VALIDATION_ERROR"
        assert (await reader.transaction(tx_id)).status == "pending"

        await service.set_withdrawal_status(tx_id, "rejected", 1, now=now)
        deleted = await service.delete_transaction(tx_id, admin_id=2)

        assert deleted.success, deleted.error
        assert await reader.transaction(tx_id) is None
        assert await reader.balance(user_id) == Decimal("300")

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, db_session):
        """Deleting a missing transaction is NOT_FOUND."""
        result = await ApprovalService(db_session).delete_transaction(777, admin_id=2)
        assert result.error_code == "NOT_FOUND"
