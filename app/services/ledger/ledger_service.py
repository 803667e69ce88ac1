"""
Ledger balance handling module.

Every balance mutation is a single conditional UPDATE ... RETURNING so
that concurrent writers cannot lose updates or overdraw an account.
The ``post_*`` helpers pair the mutation with exactly one Transaction
row in the caller's unit of work.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import TransactionStatus
from app.models.transaction import Transaction
from app.repositories.transaction_repository import TransactionRepository
from app.repositories.user_repository import UserRepository
from app.utils.exceptions import InsufficientBalanceError, NotFoundError
from app.utils.money import require_positive


class LedgerService:
    """Atomic balance operations for the ledger store."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize ledger service.

        Args:
            session: Database session
        """
        self.session = session
        self.user_repo = UserRepository(session)
        self.transaction_repo = TransactionRepository(session)

    async def credit(
        self,
        user_id: int,
        amount: Decimal,
        **counters: Decimal | int,
    ) -> Decimal:
        """
        Add funds to a user's balance.

        Args:
            user_id: User ID
            amount: Positive amount
            **counters: Aggregate columns incremented in the same statement

        Returns:
            Balance after the credit

        Raises:
            ValidationError: If amount is not positive
            NotFoundError: If user does not exist
        """
        amount = require_positive(amount)
        balance_after = await self.user_repo.increment_balance(
            user_id, amount, **counters
        )
        if balance_after is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        return balance_after

    async def debit(
        self,
        user_id: int,
        amount: Decimal,
        **counters: Decimal | int,
    ) -> Decimal:
        """
        Remove funds from a user's balance if sufficient.

        Args:
            user_id: User ID
            amount: Positive amount
            **counters: Aggregate columns decremented in the same statement

        Returns:
            Balance after the debit

        Raises:
            ValidationError: If amount is not positive
            NotFoundError: If user does not exist
            InsufficientBalanceError: If balance is lower than amount
        """
        amount = require_positive(amount)
        balance_after = await self.user_repo.decrement_balance_if_sufficient(
            user_id, amount, **counters
        )
        if balance_after is not None:
            return balance_after

        current = await self.user_repo.get_balance(user_id)
        if current is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        logger.info(
            "Debit rejected: insufficient balance",
            extra={
                "user_id": user_id,
                "amount": str(amount),
                "balance": str(current),
            },
        )
        raise InsufficientBalanceError(
            f"Insufficient balance: available {current}, required {amount}",
            user_id=user_id,
        )

    async def post_credit(
        self,
        user_id: int,
        amount: Decimal,
        tx_type: str,
        status: str = TransactionStatus.COMPLETED.value,
        occurred_at: datetime | None = None,
        counters: dict[str, Decimal | int] | None = None,
        **tx_fields: Any,
    ) -> Transaction:
        """
        Credit a balance and record the paired transaction.

        Args:
            user_id: User ID
            amount: Positive amount
            tx_type: Transaction type
            status: Transaction status
            occurred_at: Transaction timestamp (defaults to now)
            counters: Aggregate columns incremented with the balance
            **tx_fields: Extra Transaction columns

        Returns:
            Created transaction
        """
        amount = require_positive(amount)
        balance_after = await self.credit(user_id, amount, **(counters or {}))
        return await self._record(
            user_id=user_id,
            tx_type=tx_type,
            amount=amount,
            balance_before=balance_after - amount,
            balance_after=balance_after,
            status=status,
            occurred_at=occurred_at,
            **tx_fields,
        )

    async def post_debit(
        self,
        user_id: int,
        amount: Decimal,
        tx_type: str,
        status: str = TransactionStatus.COMPLETED.value,
        occurred_at: datetime | None = None,
        counters: dict[str, Decimal | int] | None = None,
        **tx_fields: Any,
    ) -> Transaction:
        """
        Debit a balance and record the paired transaction.

        Args:
            user_id: User ID
            amount: Positive amount
            tx_type: Transaction type
            status: Transaction status
            occurred_at: Transaction timestamp (defaults to now)
            counters: Aggregate columns decremented with the balance
            **tx_fields: Extra Transaction columns

        Returns:
            Created transaction
        """
        amount = require_positive(amount)
        balance_after = await self.debit(user_id, amount, **(counters or {}))
        return await self._record(
            user_id=user_id,
            tx_type=tx_type,
            amount=amount,
            balance_before=balance_after + amount,
            balance_after=balance_after,
            status=status,
            occurred_at=occurred_at,
            **tx_fields,
        )

    async def _record(
        self,
        user_id: int,
        tx_type: str,
        amount: Decimal,
        balance_before: Decimal,
        balance_after: Decimal,
        status: str,
        occurred_at: datetime | None,
        **tx_fields: Any,
    ) -> Transaction:
        """Create the Transaction row for a balance mutation."""
        if occurred_at is not None:
            tx_fields["created_at"] = occurred_at
        return await self.transaction_repo.create(
            user_id=user_id,
            type=tx_type,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            status=status,
            **tx_fields,
        )
