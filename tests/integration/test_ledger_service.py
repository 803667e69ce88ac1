"""
Integration tests for atomic balance operations.
"""

from decimal import Decimal

import pytest

from app.models.enums import TransactionStatus, TransactionType
from app.services.ledger.ledger_service import LedgerService
from app.utils.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)


class TestLedgerService:
    """Test credit and debit against the database."""

    @pytest.mark.asyncio
    async def test_post_credit_records_balances(self, db_session, factory, reader):
        """Credit returns a completed transaction with before/after balances."""
        user = await factory.user(balance="100")
        ledger = LedgerService(db_session)

        tx = await ledger.post_credit(
            user.id,
            Decimal("25.50"),
            TransactionType.DAILY_INCOME.value,
            description="test credit",
        )
        await db_session.commit()

        assert tx.status == TransactionStatus.COMPLETED.value
        assert tx.amount == Decimal("25.50")
        assert tx.balance_before == Decimal("100")
        assert tx.balance_after == Decimal("125.50")
        assert await reader.balance(user.id) == Decimal("125.50")

    @pytest.mark.asyncio
    async def test_debit_to_zero_allowed(self, db_session, factory, reader):
        """A debit may take the balance exactly to zero."""
        user = await factory.user(balance="40")
        ledger = LedgerService(db_session)

        balance_after = await ledger.debit(user.id, Decimal("40"))
        await db_session.commit()

        assert balance_after == Decimal("0")
        assert await reader.balance(user.id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_insufficient_balance_rejected(self, db_session, factory, reader):
        """Debits larger than the balance fail and change nothing."""
        user = await factory.user(balance="10")
        user_id = user.id
        ledger = LedgerService(db_session)

        with pytest.raises(InsufficientBalanceError):
            await ledger.post_debit(
                user_id, Decimal("10.01"), TransactionType.PURCHASE.value
            )
        await db_session.rollback()

        assert await reader.balance(user_id) == Decimal("10")
        assert await reader.transactions(user_id=user_id) == []

    @pytest.mark.asyncio
    async def test_second_debit_sees_first(self, db_session, factory, reader):
        """Sequential debits cannot overdraw the account."""
        user = await factory.user(balance="100")
        user_id = user.id
        ledger = LedgerService(db_session)

        await ledger.debit(user_id, Decimal("60"))
        with pytest.raises(InsufficientBalanceError):
            await ledger.debit(user_id, Decimal("60"))

        assert await reader.balance(user_id) == Decimal("40")

    @pytest.mark.asyncio
    async def test_counters_move_with_balance(self, db_session, factory, reader):
        """Aggregate counters change in the same statement as the balance."""
        user = await factory.user()
        ledger = LedgerService(db_session)

        await ledger.credit(user.id, Decimal("300"), total_deposited=Decimal("300"))
        await db_session.commit()

        refreshed = await reader.user(user.id)
        assert refreshed.balance == Decimal("300")
        assert refreshed.total_deposited == Decimal("300")

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        """Operations on a missing user raise NotFoundError."""
        ledger = LedgerService(db_session)

        with pytest.raises(NotFoundError):
            await ledger.credit(999, Decimal("1"))
        with pytest.raises(NotFoundError):
            await ledger.debit(999, Decimal("1"))

    @pytest.mark.asyncio
    async def test_non_positive_amount(self, db_session, factory):
        """Zero and negative amounts are rejected before touching the row."""
        user = await factory.user(balance="10")
        ledger = LedgerService(db_session)

        with pytest.raises(ValidationError):
            await ledger.credit(user.id, Decimal("0"))
        with pytest.raises(ValidationError):
            await ledger.debit(user.id, Decimal("-5"))
