"""
Withdrawal request handling module.

Validates a withdrawal, reserves amount plus fee from the balance and
creates the pending withdrawal transaction.
"""

from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import MIN_WITHDRAWAL_AMOUNT
from app.models.enums import LedgerEffectType, TransactionStatus, TransactionType
from app.models.transaction import Transaction
from app.repositories.payment_method_repository import PaymentMethodRepository
from app.repositories.transaction_repository import TransactionRepository
from app.repositories.user_repository import UserRepository
from app.services.ledger.effect_recorder import EffectRecorder
from app.services.withdrawal.withdrawal_balance_manager import (
    WithdrawalBalanceManager,
)
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from app.utils.money import require_positive


class WithdrawalRequestHandler:
    """Handles withdrawal request creation."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal request handler.

        Args:
            session: Database session
        """
        self.session = session
        self.transaction_repo = TransactionRepository(session)
        self.user_repo = UserRepository(session)
        self.payment_method_repo = PaymentMethodRepository(session)
        self.balance_manager = WithdrawalBalanceManager(session)

    async def request_withdrawal(
        self,
        user_id: int,
        amount: Decimal,
        payment_method_id: int,
        now: datetime | None = None,
    ) -> Transaction:
        """
        Request withdrawal with immediate balance deduction.

        Args:
            user_id: User ID
            amount: Amount to pay out (fee is charged on top)
            payment_method_id: Payout destination
            now: Request time

        Returns:
            Pending withdrawal transaction

        Raises:
            ValidationError: If amount is invalid or below minimum
            NotFoundError: If the user or payment method does not exist
            InsufficientBalanceError: If amount plus fee exceeds balance
        """
        amount = require_positive(amount)
        if amount < MIN_WITHDRAWAL_AMOUNT:
            raise ValidationError(
                f"Minimum withdrawal amount is {MIN_WITHDRAWAL_AMOUNT}"
            )

        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)
        if not user.is_active:
            raise ValidationError("Account is disabled")

        payment_method = await self.payment_method_repo.get_for_user(
            payment_method_id, user_id
        )
        if payment_method is None:
            raise NotFoundError(
                "Payment method not found", payment_method_id=payment_method_id
            )

        fee = self.balance_manager.calculate_fee(amount)
        total = amount + fee

        balance = await self.user_repo.get_balance(user_id)
        if balance is None or balance < total:
            raise InsufficientBalanceError(
                f"Insufficient balance: available {balance}, "
                f"required {total} (including fee {fee})",
                user_id=user_id,
            )

        # The conditional debit re-checks the balance atomically
        balance_after = await self.balance_manager.deduct_balance(user_id, total)

        now = now or utc_now()
        withdrawal = await self.transaction_repo.create(
            user_id=user_id,
            type=TransactionType.WITHDRAWAL.value,
            amount=amount,
            fee=fee,
            status=TransactionStatus.PENDING.value,
            balance_before=balance_after + total,
            balance_after=balance_after,
            payment_method=payment_method.method,
            payment_number=payment_method.account_number,
            payment_method_id=payment_method.id,
            description=f"Withdrawal to {payment_method.method}",
            created_at=now,
        )

        recorder = EffectRecorder(self.session, withdrawal.id, occurred_at=now)
        await recorder.record(
            LedgerEffectType.BALANCE_DEBIT,
            user_id=user_id,
            amount=total,
        )

        logger.info(
            "Withdrawal requested",
            extra={
                "transaction_id": withdrawal.id,
                "user_id": user_id,
                "amount": str(amount),
                "fee": str(fee),
                "balance_after": str(balance_after),
            },
        )
        return withdrawal
