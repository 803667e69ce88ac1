"""
Withdrawal lifecycle handling module.

Handles withdrawal approval and rejection. Funds were reserved when the
request was made, so approval leaves the ledger untouched and rejection
refunds amount plus fee.
"""

from datetime import datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import (
    CommissionEventType,
    LedgerEffectType,
    TransactionStatus,
    TransactionType,
)
from app.models.transaction import Transaction
from app.repositories.ledger_effect_repository import LedgerEffectRepository
from app.repositories.transaction_repository import TransactionRepository
from app.services.deposit.deposit_approval_handler import (
    ApprovalOutcome,
    check_decision,
)
from app.services.ledger.effect_recorder import EffectRecorder
from app.services.referral.commission_engine import CommissionEngine
from app.services.withdrawal.withdrawal_balance_manager import (
    WithdrawalBalanceManager,
)
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import NotFoundError


class WithdrawalLifecycleHandler:
    """Handles withdrawal lifecycle operations."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize withdrawal lifecycle handler.

        Args:
            session: Database session
        """
        self.session = session
        self.transaction_repo = TransactionRepository(session)
        self.effect_repo = LedgerEffectRepository(session)
        self.balance_manager = WithdrawalBalanceManager(session)
        self.commission_engine = CommissionEngine(session)

    async def get_locked_withdrawal(self, tx_id: int) -> Transaction:
        """
        Load a withdrawal under row lock.

        Raises:
            NotFoundError: If no withdrawal has this id
        """
        tx = await self.transaction_repo.get_for_update(tx_id)
        if tx is None or tx.type != TransactionType.WITHDRAWAL.value:
            raise NotFoundError(f"Withdrawal {tx_id} not found", transaction_id=tx_id)
        return tx

    async def set_status(
        self,
        tx_id: int,
        new_status: str,
        approver_id: int | None,
        now: datetime | None = None,
    ) -> ApprovalOutcome:
        """
        Approve or reject a pending withdrawal.

        Args:
            tx_id: Withdrawal transaction ID
            new_status: approved or rejected
            approver_id: Administrator ID
            now: Decision time

        Returns:
            ApprovalOutcome with the commission walk result on approval
        """
        now = now or utc_now()
        tx = await self.get_locked_withdrawal(tx_id)
        check_decision(tx, new_status)

        tx.approved_by = approver_id
        tx.approved_at = now

        if new_status == TransactionStatus.REJECTED.value:
            await self._reject(tx, now)
            return ApprovalOutcome(transaction=tx)

        tx.status = TransactionStatus.APPROVED.value
        commission = await self.commission_engine.distribute(
            tx.user_id,
            tx.amount,
            CommissionEventType.WITHDRAWAL,
            source_transaction_id=tx.id,
            now=now,
        )
        recorder = EffectRecorder(self.session, tx.id, occurred_at=now)
        await recorder.record_commissions(commission)
        await self.session.flush()

        logger.info(
            "Withdrawal approved",
            extra={
                "transaction_id": tx.id,
                "user_id": tx.user_id,
                "amount": str(tx.amount),
                "approver_id": approver_id,
                "commission_total": str(commission.total_paid),
            },
        )
        return ApprovalOutcome(transaction=tx, commission=commission)

    async def _reject(self, tx: Transaction, now: datetime) -> None:
        """Refund the reserved funds and mark the reservation undone."""
        total = tx.amount + (tx.fee or 0)
        balance_after = await self.balance_manager.restore_balance(tx.user_id, total)

        for effect in await self.effect_repo.get_open_effects_reversed_order(tx.id):
            if effect.effect_type == LedgerEffectType.BALANCE_DEBIT.value:
                effect.reversed_at = now

        tx.status = TransactionStatus.REJECTED.value
        tx.description = (
            f"{tx.description}\nRefunded {total}, balance {balance_after}"
            if tx.description
            else f"Refunded {total}, balance {balance_after}"
        )
        await self.session.flush()

        logger.info(
            "Withdrawal rejected and refunded",
            extra={
                "transaction_id": tx.id,
                "user_id": tx.user_id,
                "refunded": str(total),
            },
        )
