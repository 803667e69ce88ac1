"""
Transaction approval service - Main service facade.

Entry point for deposit and withdrawal submission, admin status
decisions, reversal and removal. Each public method is one unit of work
and returns a ServiceResult.

Module structure:
- deposit/deposit_submission_handler: pending deposit creation
- deposit/deposit_approval_handler: deposit approval and rejection
- withdrawal/withdrawal_request_handler: withdrawal request creation
- withdrawal/withdrawal_lifecycle_handler: withdrawal approval and rejection
- ledger/reversal_handler: reversal of approved transactions
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import TransactionStatus, TransactionType
from app.repositories.transaction_repository import TransactionRepository
from app.services.base_service import BaseService, service_operation
from app.services.deposit.deposit_approval_handler import DepositApprovalHandler
from app.services.deposit.deposit_submission_handler import (
    DepositSubmissionHandler,
)
from app.services.ledger.reversal_handler import ReversalHandler
from app.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
)
from app.services.withdrawal.withdrawal_request_handler import (
    WithdrawalRequestHandler,
)
from app.utils.exceptions import NotFoundError, ValidationError


class ApprovalService(BaseService):
    """
    Approval workflow for deposits and withdrawals.

    This is a facade that delegates to specialized handlers.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize approval service and all sub-components."""
        super().__init__(session)

        self.transaction_repo = TransactionRepository(session)
        self.deposit_submission = DepositSubmissionHandler(session)
        self.deposit_approval = DepositApprovalHandler(session)
        self.withdrawal_request = WithdrawalRequestHandler(session)
        self.withdrawal_lifecycle = WithdrawalLifecycleHandler(session)
        self.reversal_handler = ReversalHandler(session)

    # ========================================================================
    # DEPOSITS
    # ========================================================================

    @service_operation
    async def submit_deposit(
        self,
        user_id: int,
        amount: Decimal,
        external_tx_id: str,
        method: str,
        payment_number: str | None = None,
    ):
        """
        Submit a deposit for review.

        Args:
            user_id: Depositing user
            amount: Deposited amount
            external_tx_id: Payment provider transaction id (idempotency key)
            method: Payment method name
            payment_number: Sender account number

        Returns:
            ServiceResult with the pending Transaction
        """
        return await self.deposit_submission.submit_deposit(
            user_id, amount, external_tx_id, method, payment_number
        )

    @service_operation
    async def set_transaction_status(
        self,
        tx_id: int,
        status: str,
        approver_id: int | None,
        now: datetime | None = None,
    ):
        """
        Approve or reject a pending deposit.

        Approval credits the ledger, activates the referral edge and pays
        commissions in one database transaction.

        Args:
            tx_id: Deposit transaction ID
            status: approved or rejected
            approver_id: Administrator ID
            now: Decision time (defaults to now)

        Returns:
            ServiceResult with ApprovalOutcome
        """
        return await self.deposit_approval.set_status(
            tx_id, status, approver_id, now=now
        )

    # ========================================================================
    # WITHDRAWALS
    # ========================================================================

    @service_operation
    async def submit_withdrawal(
        self,
        user_id: int,
        amount: Decimal,
        payment_method_id: int,
        now: datetime | None = None,
    ):
        """
        Request a withdrawal; amount plus fee is reserved immediately.

        Returns:
            ServiceResult with the pending Transaction
        """
        return await self.withdrawal_request.request_withdrawal(
            user_id, amount, payment_method_id, now=now
        )

    @service_operation
    async def set_withdrawal_status(
        self,
        tx_id: int,
        status: str,
        approver_id: int | None,
        now: datetime | None = None,
    ):
        """
        Approve or reject a pending withdrawal.

        Returns:
            ServiceResult with ApprovalOutcome
        """
        return await self.withdrawal_lifecycle.set_status(
            tx_id, status, approver_id, now=now
        )

    # ========================================================================
    # ADMIN CORRECTIONS
    # ========================================================================

    @service_operation
    async def reverse_transaction(
        self,
        tx_id: int,
        admin_id: int | None,
        reason: str | None = None,
        now: datetime | None = None,
    ):
        """
        Reverse an approved deposit or withdrawal with all derived effects.

        Args:
            tx_id: Transaction ID
            admin_id: Administrator ID
            reason: Reason stored on the compensating records
            now: Reversal time

        Returns:
            ServiceResult with ReversalResult
        """
        tx = await self.transaction_repo.get_for_update(tx_id)
        if tx is None:
            raise NotFoundError(f"Transaction {tx_id} not found", transaction_id=tx_id)
        return await self.reversal_handler.reverse(tx, admin_id, reason, now=now)

    @service_operation
    async def delete_transaction(
        self,
        tx_id: int,
        admin_id: int | None,
        reason: str | None = None,
    ):
        """
        Remove a transaction.

        Approved transactions are reversed and kept as ``reversed`` records.
        Pending or rejected deposits and rejected withdrawals are deleted.
        Pending withdrawals must be rejected first so funds are refunded.

        Returns:
            ServiceResult with {"deleted": bool, "reversal": ReversalResult | None}
        """
        tx = await self.transaction_repo.get_for_update(tx_id)
        if tx is None:
            raise NotFoundError(f"Transaction {tx_id} not found", transaction_id=tx_id)

        if tx.status == TransactionStatus.APPROVED.value:
            reversal = await self.reversal_handler.reverse(
                tx, admin_id, reason or "Deleted by administrator"
            )
            return {"deleted": False, "reversal": reversal}

        deletable = (
            tx.type == TransactionType.DEPOSIT.value
            and tx.status in (TransactionStatus.PENDING.value, TransactionStatus.REJECTED.value)
        ) or (
            tx.type == TransactionType.WITHDRAWAL.value
            and tx.status == TransactionStatus.REJECTED.value
        )
        if not deletable:
            raise ValidationError(
                f"Cannot delete {tx.type} transaction in status {tx.status}",
                transaction_id=tx_id,
            )

        await self.transaction_repo.delete(tx_id)
        self.logger.info(
            "Transaction deleted",
            extra={"transaction_id": tx_id, "type": tx.type, "admin_id": admin_id},
        )
        return {"deleted": True, "reversal": None}
