"""
Integration tests for the deposit and withdrawal approval workflow.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from app.models.enums import (
    LedgerEffectType,
    ReferralStatus,
    TransactionStatus,
    TransactionType,
)
from app.models.ledger_effect import LedgerEffect
from app.services.approval_service import ApprovalService
from app.services.product_service import ProductService


async def effect_types(session, tx_id: int) -> list[str]:
    stmt = (
        select(LedgerEffect.effect_type)
        .where(LedgerEffect.source_transaction_id == tx_id)
        .order_by(LedgerEffect.sequence)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


class TestDepositSubmission:
    """Test pending deposit creation."""

    @pytest.mark.asyncio
    async def test_submit_creates_pending(self, db_session, factory, reader):
        """A submitted deposit is pending and does not touch the balance."""
        user = await factory.user()
        service = ApprovalService(db_session)

        result = await service.submit_deposit(
            user.id, Decimal("500"), "TRX-1001", "bkash", "01711111111"
        )

        assert result.success, result.error
        deposit = result.data
        assert deposit.status == TransactionStatus.PENDING.value
        assert deposit.type == TransactionType.DEPOSIT.value
        assert deposit.external_id == "TRX-1001"
        assert await reader.balance(user.id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_duplicate_external_id(self, db_session, factory, reader):
        """The same external id can only be submitted once."""
        user = await factory.user()
        user_id = user.id
        service = ApprovalService(db_session)

        first = await service.submit_deposit(user_id, Decimal("500"), "TRX-1", "nagad")
        second = await service.submit_deposit(user_id, Decimal("700"), "TRX-1", "nagad")

        assert first.success
        assert not second.success
        assert second.error_code == "DUPLICATE_IDEMPOTENCY_KEY"
        deposits = await reader.transactions(type=TransactionType.DEPOSIT.value)
        assert len(deposits) == 1
        assert deposits[0].amount == Decimal("500")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "amount,external_id,method",
        [
            (Decimal("0"), "TRX-2", "bkash"),
            (Decimal("-10"), "TRX-2", "bkash"),
            (Decimal("100"), "  ", "bkash"),
            (Decimal("100"), "TRX-2", ""),
        ],
    )
    async def test_invalid_input(self, db_session, factory, amount, external_id, method):
        """Missing fields and non-positive amounts are validation errors."""
        user = await factory.user()
        service = ApprovalService(db_session)

        result = await service.submit_deposit(user.id, amount, external_id, method)

        assert not result.success
        assert result.error_code == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        """Deposits for missing users are rejected."""
        result = await ApprovalService(db_session).submit_deposit(
            404, Decimal("100"), "TRX-3", "bkash"
        )
        assert result.error_code == "NOT_FOUND"


class TestDepositDecision:
    """Test deposit approval and rejection."""

    @pytest.mark.asyncio
    async def test_approve_credits_balance(self, db_session, factory, reader, now):
        """Approval credits the user and records the effect list."""
        user = await factory.user()
        user_id = user.id
        service = ApprovalService(db_session)
        deposit_id = (
            await service.submit_deposit(user_id, Decimal("1000"), "TRX-10", "bkash")
        ).data.id

        result = await service.set_transaction_status(
            deposit_id, "approved", approver_id=1, now=now
        )

        assert result.success, result.error
        deposit = await reader.transaction(deposit_id)
        assert deposit.status == TransactionStatus.APPROVED.value
        assert deposit.approved_by == 1
        assert deposit.balance_before == Decimal("0")
        assert deposit.balance_after == Decimal("1000")

        refreshed = await reader.user(user_id)
        assert refreshed.balance == Decimal("1000")
        assert refreshed.total_deposited == Decimal("1000")
        assert await effect_types(db_session, deposit_id) == [
            LedgerEffectType.BALANCE_CREDIT.value
        ]

    @pytest.mark.asyncio
    async def test_reject_leaves_balance(self, db_session, factory, reader, now):
        """Rejection only changes the status."""
        user = await factory.user()
        user_id = user.id
        service = ApprovalService(db_session)
        deposit_id = (
            await service.submit_deposit(user_id, Decimal("1000"), "TRX-11", "bkash")
        ).data.id

        result = await service.set_transaction_status(
            deposit_id, "rejected", approver_id=1, now=now
        )

        assert result.success
        assert (await reader.transaction(deposit_id)).status == "rejected"
        assert await reader.balance(user_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_decision_is_final(self, db_session, factory, reader, now):
        """A decided deposit cannot be decided again."""
        user = await factory.user()
        user_id = user.id
        service = ApprovalService(db_session)
        deposit_id = (
            await service.submit_deposit(user_id, Decimal("300"), "TRX-12", "bkash")
        ).data.id
        await service.set_transaction_status(deposit_id, "approved", 1, now=now)

        again = await service.set_transaction_status(deposit_id, "approved", 1, now=now)
        flip = await service.set_transaction_status(deposit_id, "rejected", 1, now=now)

        assert again.error_code == "INVALID_STATUS_TRANSITION"
        assert flip.error_code == "INVALID_STATUS_TRANSITION"
        assert await reader.balance(user_id) == Decimal("300")

    @pytest.mark.asyncio
    async def test_unknown_deposit(self, db_session):
        """Deciding a missing deposit is NOT_FOUND."""
        result = await ApprovalService(db_session).set_transaction_status(
            12345, "approved", 1
        )
        assert result.error_code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_first_deposit_activates_referral(
        self, db_session, factory, reader, now
    ):
        """Approval activates the pending edge before commissions are paid."""
        referrer = await factory.user()
        referrer_id = referrer.id
        await factory.active_referrals(referrer, 4)
        depositor = await factory.user()
        depositor_id = depositor.id
        await factory.edge(referrer, depositor, status=ReferralStatus.PENDING)

        service = ApprovalService(db_session)
        deposit_id = (
            await service.submit_deposit(depositor_id, Decimal("1000"), "TRX-20", "bkash")
        ).data.id
        result = await service.set_transaction_status(deposit_id, "approved", 1, now=now)

        assert result.success, result.error
        edge = await reader.referral(depositor_id)
        assert edge.status == ReferralStatus.ACTIVE.value
        assert edge.has_deposited is True
        assert edge.activation_amount == Decimal("1000")
        assert edge.total_earned == Decimal("50")

        # Five active referrals reach bronze (5%)
        payouts = result.data.commission.payouts
        assert [(p.level, p.referrer_id, p.amount) for p in payouts] == [
            (1, referrer_id, Decimal("50.00"))
        ]
        assert await reader.balance(referrer_id) == Decimal("50")
        assert await effect_types(db_session, deposit_id) == [
            LedgerEffectType.BALANCE_CREDIT.value,
            LedgerEffectType.REFERRAL_ACTIVATION.value,
            LedgerEffectType.COMMISSION_PAYOUT.value,
        ]


class TestQualifyingEventFlags:
    """Test edge flags for events after activation."""

    @pytest.mark.asyncio
    async def test_purchase_after_deposit_sets_flag(
        self, db_session, factory, reader, now
    ):
        """A later purchase marks has_purchased on an already active edge."""
        referrer = await factory.user()
        depositor = await factory.user()
        depositor_id = depositor.id
        await factory.edge(referrer, depositor, status=ReferralStatus.PENDING)
        product = await factory.product(price="1000")
        product_id = product.id

        service = ApprovalService(db_session)
        deposit_id = (
            await service.submit_deposit(depositor_id, Decimal("2000"), "TRX-30", "bkash")
        ).data.id
        assert (
            await service.set_transaction_status(deposit_id, "approved", 1, now=now)
        ).success

        result = await ProductService(db_session).purchase_product(
            depositor_id, product_id, now=now
        )

        assert result.success, result.error
        edge = await reader.referral(depositor_id)
        assert edge.status == ReferralStatus.ACTIVE.value
        assert edge.has_deposited is True
        assert edge.has_purchased is True

    @pytest.mark.asyncio
    async def test_deposit_after_purchase_records_flag_effect(
        self, db_session, factory, reader, now
    ):
        """A deposit on an edge activated by a purchase sets has_deposited."""
        referrer = await factory.user()
        buyer = await factory.user(balance="1000")
        buyer_id = buyer.id
        await factory.edge(referrer, buyer, status=ReferralStatus.PENDING)
        product = await factory.product(price="1000")

        assert (
            await ProductService(db_session).purchase_product(buyer_id, product.id, now=now)
        ).success

        service = ApprovalService(db_session)
        deposit_id = (
            await service.submit_deposit(buyer_id, Decimal("500"), "TRX-31", "bkash")
        ).data.id
        result = await service.set_transaction_status(deposit_id, "approved", 1, now=now)

        assert result.success, result.error
        edge = await reader.referral(buyer_id)
        assert edge.has_purchased is True
        assert edge.has_deposited is True
        assert await effect_types(db_session, deposit_id) == [
            LedgerEffectType.BALANCE_CREDIT.value,
            LedgerEffectType.REFERRAL_ACTIVATION.value,
        ]

    @pytest.mark.asyncio
    async def test_repeat_deposit_records_no_activation(
        self, db_session, factory, now
    ):
        """A second deposit leaves the edge and its flags untouched."""
        referrer = await factory.user()
        depositor = await factory.user()
        depositor_id = depositor.id
        await factory.edge(referrer, depositor, status=ReferralStatus.PENDING)

        service = ApprovalService(db_session)
        first_id = (
            await service.submit_deposit(depositor_id, Decimal("300"), "TRX-32", "bkash")
        ).data.id
        assert (await service.set_transaction_status(first_id, "approved", 1, now=now)).success
        second_id = (
            await service.submit_deposit(depositor_id, Decimal("300"), "TRX-33", "bkash")
        ).data.id
        assert (await service.set_transaction_status(second_id, "approved", 1, now=now)).success

        assert await effect_types(db_session, second_id) == [
            LedgerEffectType.BALANCE_CREDIT.value,
        ]


class TestWithdrawals:
    """Test withdrawal request, approval and rejection."""

    @pytest.mark.asyncio
    async def test_request_reserves_amount_and_fee(self, db_session, factory, reader, now):
        """Amount plus 5% fee leaves the balance at request time."""
        user = await factory.user(balance="300")
        method = await factory.payment_method(user)
        service = ApprovalService(db_session)

        result = await service.submit_withdrawal(user.id, Decimal("200"), method.id, now=now)

        assert result.success, result.error
        withdrawal = result.data
        assert withdrawal.status == TransactionStatus.PENDING.value
        assert withdrawal.amount == Decimal("200")
        assert withdrawal.fee == Decimal("10")
        assert withdrawal.payment_method == "bkash"
        assert await reader.balance(user.id) == Decimal("90")

    @pytest.mark.asyncio
    async def test_below_minimum(self, db_session, factory, reader):
        """Requests under the minimum are rejected."""
        user = await factory.user(balance="1000")
        user_id = user.id
        method = await factory.payment_method(user)

        result = await ApprovalService(db_session).submit_withdrawal(
            user_id, Decimal("199.99"), method.id
        )

        assert result.error_code == "VALIDATION_ERROR"
        assert await reader.balance(user_id) == Decimal("1000")

    @pytest.mark.asyncio
    async def test_fee_counts_towards_balance(self, db_session, factory, reader):
        """Balance must cover the fee as well as the amount."""
        user = await factory.user(balance="205")
        user_id = user.id
        method = await factory.payment_method(user)

        result = await ApprovalService(db_session).submit_withdrawal(
            user_id, Decimal("200"), method.id
        )

        assert result.error_code == "INSUFFICIENT_BALANCE"
        assert await reader.balance(user_id) == Decimal("205")

    @pytest.mark.asyncio
    async def test_foreign_payment_method(self, db_session, factory):
        """A payment method of another user cannot be used."""
        owner = await factory.user()
        other = await factory.user(balance="1000")
        method = await factory.payment_method(owner)

        result = await ApprovalService(db_session).submit_withdrawal(
            other.id, Decimal("200"), method.id
        )

        assert result.error_code == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_reject_refunds(self, db_session, factory, reader, now):
        """Rejection returns amount and fee."""
        user = await factory.user(balance="300")
        user_id = user.id
        method = await factory.payment_method(user)
        service = ApprovalService(db_session)
        tx_id = (
            await service.submit_withdrawal(user_id, Decimal("200"), method.id, now=now)
        ).data.id

        result = await service.set_withdrawal_status(tx_id, "rejected", 1, now=now)

        assert result.success, result.error
        assert (await reader.transaction(tx_id)).status == "rejected"
        assert await reader.balance(user_id) == Decimal("300")

    @pytest.mark.asyncio
    async def test_approve_pays_commission(self, db_session, factory, reader, now):
        """Approval keeps the reserved funds out and pays the upline."""
        referrer = await factory.user()
        referrer_id = referrer.id
        user = await factory.user(balance="300")
        user_id = user.id
        await factory.edge(referrer, user)
        await factory.active_referrals(referrer, 4)
        method = await factory.payment_method(user)
        service = ApprovalService(db_session)
        tx_id = (
            await service.submit_withdrawal(user_id, Decimal("200"), method.id, now=now)
        ).data.id

        result = await service.set_withdrawal_status(tx_id, "approved", 1, now=now)

        assert result.success, result.error
        assert (await reader.transaction(tx_id)).status == "approved"
        assert await reader.balance(user_id) == Decimal("90")
        assert await reader.balance(referrer_id) == Decimal("10")

    @pytest.mark.asyncio
    async def test_cannot_decide_twice(self, db_session, factory, reader, now):
        """A rejected withdrawal cannot be approved afterwards."""
        user = await factory.user(balance="300")
        user_id = user.id
        method = await factory.payment_method(user)
        service = ApprovalService(db_session)
        tx_id = (
            await service.submit_withdrawal(user_id, Decimal("200"), method.id, now=now)
        ).data.id
        await service.set_withdrawal_status(tx_id, "rejected", 1, now=now)

        result = await service.set_withdrawal_status(tx_id, "approved", 1, now=now)

        assert result.error_code == "INVALID_STATUS_TRANSITION"
        assert await reader.balance(user_id) == Decimal("300")


class TestBalanceConservation:
    """Test that balances equal the net of their ledger rows."""

    @pytest.mark.asyncio
    async def test_deposit_withdrawal_purchase_sequence(
        self, db_session, factory, reader, now
    ):
        """Every balance change is matched by a transaction row."""
        referrer = await factory.user()
        referrer_id = referrer.id
        await factory.active_referrals(referrer, 4)
        member = await factory.user()
        member_id = member.id
        await factory.edge(referrer, member, status=ReferralStatus.PENDING)
        method = await factory.payment_method(member)
        product = await factory.product(price="1000")
        method_id, product_id = method.id, product.id

        service = ApprovalService(db_session)
        deposit_id = (
            await service.submit_deposit(member_id, Decimal("2000"), "TRX-40", "bkash")
        ).data.id
        assert (await service.set_transaction_status(deposit_id, "approved", 1, now=now)).success
        withdrawal_id = (
            await service.submit_withdrawal(member_id, Decimal("500"), method_id, now=now)
        ).data.id
        assert (
            await service.set_withdrawal_status(withdrawal_id, "approved", 1, now=now)
        ).success
        assert (
            await ProductService(db_session).purchase_product(member_id, product_id, now=now)
        ).success

        rows = await reader.transactions(user_id=member_id)
        credits = sum(
            (tx.amount for tx in rows if tx.type == TransactionType.DEPOSIT.value),
            Decimal("0"),
        )
        debits = sum(
            (
                tx.amount + tx.fee
                for tx in rows
                if tx.type == TransactionType.WITHDRAWAL.value
            ),
            Decimal("0"),
        ) + sum(
            (tx.amount for tx in rows if tx.type == TransactionType.PURCHASE.value),
            Decimal("0"),
        )
        assert await reader.balance(member_id) == credits - debits == Decimal("475")

        commissions = await reader.transactions(
            user_id=referrer_id, type=TransactionType.REFERRAL_COMMISSION.value
        )
        assert [tx.amount for tx in commissions] == [
            Decimal("100"),
            Decimal("25"),
            Decimal("50"),
        ]
        referrer = await reader.user(referrer_id)
        assert referrer.balance == referrer.total_commission == Decimal("175")
