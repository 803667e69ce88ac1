"""
Deposit submission module.

Creates pending deposit transactions keyed by the external payment id.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import TransactionStatus, TransactionType
from app.models.transaction import Transaction
from app.repositories.transaction_repository import TransactionRepository
from app.repositories.user_repository import UserRepository
from app.utils.exceptions import (
    DuplicateIdempotencyKeyError,
    NotFoundError,
    ValidationError,
)
from app.utils.money import require_positive


class DepositSubmissionHandler:
    """Handles deposit submission."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize deposit submission handler.

        Args:
            session: Database session
        """
        self.session = session
        self.transaction_repo = TransactionRepository(session)
        self.user_repo = UserRepository(session)

    async def submit_deposit(
        self,
        user_id: int,
        amount: Decimal,
        external_tx_id: str,
        method: str,
        payment_number: str | None = None,
    ) -> Transaction:
        """
        Create a pending deposit.

        The external id is checked up front and enforced again by the unique
        index, so concurrent submissions of the same id cannot both land.

        Args:
            user_id: Depositing user
            amount: Deposited amount
            external_tx_id: Payment provider transaction id
            method: Payment method name
            payment_number: Sender account number

        Returns:
            Pending deposit transaction

        Raises:
            ValidationError: If a field is missing or amount is not positive
            NotFoundError: If the user does not exist
            DuplicateIdempotencyKeyError: If the external id was already used
        """
        if not user_id:
            raise ValidationError("user_id is required")
        external_tx_id = (external_tx_id or "").strip()
        if not external_tx_id:
            raise ValidationError("Transaction ID is required")
        method = (method or "").strip()
        if not method:
            raise ValidationError("Payment method is required")
        amount = require_positive(amount)

        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        if await self.transaction_repo.get_by_external_id(external_tx_id):
            raise DuplicateIdempotencyKeyError(
                "Transaction ID already submitted", external_id=external_tx_id
            )

        try:
            async with self.session.begin_nested():
                deposit = await self.transaction_repo.create(
                    user_id=user_id,
                    type=TransactionType.DEPOSIT.value,
                    amount=amount,
                    status=TransactionStatus.PENDING.value,
                    external_id=external_tx_id,
                    payment_method=method,
                    payment_number=payment_number,
                    description=f"Deposit via {method}",
                )
        except IntegrityError as exc:
            raise DuplicateIdempotencyKeyError(
                "Transaction ID already submitted", external_id=external_tx_id
            ) from exc

        logger.info(
            "Deposit submitted",
            extra={
                "transaction_id": deposit.id,
                "user_id": user_id,
                "amount": str(amount),
                "method": method,
            },
        )
        return deposit
