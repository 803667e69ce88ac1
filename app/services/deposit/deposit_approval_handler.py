"""
Deposit approval module.

Moves a pending deposit to approved or rejected. Approval credits the
ledger, activates the depositor's referral edge and runs the commission
walk, recording every mutation in the deposit's effect list.
"""

from dataclasses import dataclass
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
from app.repositories.transaction_repository import TransactionRepository
from app.services.ledger.effect_recorder import EffectRecorder
from app.services.ledger.ledger_service import LedgerService
from app.services.referral.chain_manager import ReferralChainManager
from app.services.referral.commission_engine import (
    CommissionEngine,
    CommissionResult,
)
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import InvalidStatusTransitionError, NotFoundError

DECISION_STATUSES = (
    TransactionStatus.APPROVED.value,
    TransactionStatus.REJECTED.value,
)


@dataclass
class ApprovalOutcome:
    """Result of a status decision."""

    transaction: Transaction
    commission: CommissionResult | None = None


def check_decision(tx: Transaction, new_status: str) -> None:
    """
    Validate a pending -> approved/rejected transition.

    Args:
        tx: Transaction being decided
        new_status: Requested status

    Raises:
        InvalidStatusTransitionError: For any other transition
    """
    if new_status not in DECISION_STATUSES:
        raise InvalidStatusTransitionError(
            f"Unsupported target status: {new_status}",
            transaction_id=tx.id,
        )
    if tx.status != TransactionStatus.PENDING.value:
        raise InvalidStatusTransitionError(
            f"Transaction is already {tx.status}",
            transaction_id=tx.id,
        )


class DepositApprovalHandler:
    """Handles deposit status decisions."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize deposit approval handler.

        Args:
            session: Database session
        """
        self.session = session
        self.transaction_repo = TransactionRepository(session)
        self.ledger = LedgerService(session)
        self.chain_manager = ReferralChainManager(session)
        self.commission_engine = CommissionEngine(session)

    async def get_locked_deposit(self, tx_id: int) -> Transaction:
        """
        Load a deposit under row lock.

        Raises:
            NotFoundError: If no deposit has this id
        """
        tx = await self.transaction_repo.get_for_update(tx_id)
        if tx is None or tx.type != TransactionType.DEPOSIT.value:
            raise NotFoundError(f"Deposit {tx_id} not found", transaction_id=tx_id)
        return tx

    async def set_status(
        self,
        tx_id: int,
        new_status: str,
        approver_id: int | None,
        now: datetime | None = None,
    ) -> ApprovalOutcome:
        """
        Approve or reject a pending deposit.

        Args:
            tx_id: Deposit transaction ID
            new_status: approved or rejected
            approver_id: Administrator ID
            now: Decision time

        Returns:
            ApprovalOutcome with the commission walk result on approval
        """
        now = now or utc_now()
        tx = await self.get_locked_deposit(tx_id)
        check_decision(tx, new_status)

        tx.approved_by = approver_id
        tx.approved_at = now

        if new_status == TransactionStatus.REJECTED.value:
            tx.status = TransactionStatus.REJECTED.value
            await self.session.flush()
            logger.info(
                "Deposit rejected",
                extra={"transaction_id": tx.id, "approver_id": approver_id},
            )
            return ApprovalOutcome(transaction=tx)

        return await self._approve(tx, now)

    async def _approve(self, tx: Transaction, now: datetime) -> ApprovalOutcome:
        """Credit the deposit and run activation and commissions."""
        recorder = EffectRecorder(self.session, tx.id, occurred_at=now)

        balance_after = await self.ledger.credit(
            tx.user_id, tx.amount, total_deposited=tx.amount
        )
        tx.balance_before = balance_after - tx.amount
        tx.balance_after = balance_after
        tx.status = TransactionStatus.APPROVED.value
        await recorder.record(
            LedgerEffectType.BALANCE_CREDIT,
            user_id=tx.user_id,
            amount=tx.amount,
            previous_state={"counters": {"total_deposited": str(tx.amount)}},
        )

        activation = await self.chain_manager.activate_edge(
            tx.user_id, tx.amount, CommissionEventType.DEPOSIT, now=now
        )
        await recorder.record_activation(activation)

        commission = await self.commission_engine.distribute(
            tx.user_id,
            tx.amount,
            CommissionEventType.DEPOSIT,
            source_transaction_id=tx.id,
            now=now,
        )
        await recorder.record_commissions(commission)
        await self.session.flush()

        logger.info(
            "Deposit approved",
            extra={
                "transaction_id": tx.id,
                "user_id": tx.user_id,
                "amount": str(tx.amount),
                "edge_activated": activation is not None,
                "commission_total": str(commission.total_paid),
            },
        )
        return ApprovalOutcome(transaction=tx, commission=commission)
