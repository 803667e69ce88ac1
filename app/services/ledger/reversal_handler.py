"""
Transaction reversal module.

Undoes an approved deposit or withdrawal by replaying its effect list in
reverse order. All compensating writes share the caller's unit of work,
so a failure at any step leaves nothing changed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import LedgerEffectType, TransactionStatus, TransactionType
from app.models.ledger_effect import LedgerEffect
from app.models.transaction import Transaction
from app.repositories.ledger_effect_repository import LedgerEffectRepository
from app.repositories.referral_earning_repository import (
    ReferralEarningRepository,
)
from app.repositories.referral_repository import ReferralRepository
from app.repositories.transaction_repository import TransactionRepository
from app.services.ledger.ledger_service import LedgerService
from app.services.referral.chain_manager import ReferralChainManager
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import InvalidStatusTransitionError

REVERSIBLE_TYPES = (TransactionType.DEPOSIT.value, TransactionType.WITHDRAWAL.value)


@dataclass
class ReversalResult:
    """Summary of a completed reversal."""

    transaction_id: int
    effects_reversed: int = 0
    commissions_clawed_back: Decimal = Decimal("0")
    reversal_transaction_ids: list[int] = field(default_factory=list)


class ReversalHandler:
    """Replays effect lists to reverse approved transactions."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize reversal handler."""
        self.session = session
        self.ledger = LedgerService(session)
        self.chain_manager = ReferralChainManager(session)
        self.effect_repo = LedgerEffectRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.earning_repo = ReferralEarningRepository(session)

    async def reverse(
        self,
        tx: Transaction,
        admin_id: int | None,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> ReversalResult:
        """
        Reverse an approved deposit or withdrawal.

        Args:
            tx: Source transaction (locked by the caller)
            admin_id: Administrator performing the reversal
            reason: Free-text reason stored on the records
            now: Reversal time

        Returns:
            ReversalResult

        Raises:
            InvalidStatusTransitionError: If tx is not an approved deposit/withdrawal
            InsufficientBalanceError: If a party no longer holds the funds
        """
        if tx.type not in REVERSIBLE_TYPES or tx.status != TransactionStatus.APPROVED.value:
            raise InvalidStatusTransitionError(
                f"Cannot reverse {tx.type} transaction in status {tx.status}",
                transaction_id=tx.id,
            )

        now = now or utc_now()
        result = ReversalResult(transaction_id=tx.id)
        note = f"Reversal of transaction #{tx.id}" + (f": {reason}" if reason else "")

        effects = await self.effect_repo.get_open_effects_reversed_order(tx.id)
        for effect in effects:
            reversal_tx = await self._undo(effect, tx, note, now)
            if reversal_tx is not None:
                result.reversal_transaction_ids.append(reversal_tx.id)
            if effect.effect_type == LedgerEffectType.COMMISSION_PAYOUT.value:
                result.commissions_clawed_back += effect.amount
            effect.reversed_at = now
            result.effects_reversed += 1

        tx.status = TransactionStatus.REVERSED.value
        tx.approved_by = admin_id
        tx.description = f"{tx.description}\n{note}" if tx.description else note
        await self.session.flush()

        logger.info(
            "Transaction reversed",
            extra={
                "transaction_id": tx.id,
                "type": tx.type,
                "effects_reversed": result.effects_reversed,
                "commissions_clawed_back": str(result.commissions_clawed_back),
                "admin_id": admin_id,
            },
        )
        return result

    async def _undo(
        self,
        effect: LedgerEffect,
        source: Transaction,
        note: str,
        now: datetime,
    ) -> Transaction | None:
        """Apply the inverse of one effect."""
        effect_type = LedgerEffectType(effect.effect_type)

        if effect_type == LedgerEffectType.REFERRAL_ACTIVATION:
            if effect.referral_id is not None:
                await self.chain_manager.restore_edge(
                    effect.referral_id,
                    effect.previous_state or {},
                    source_transaction_id=source.id,
                )
            return None

        if effect_type == LedgerEffectType.COMMISSION_PAYOUT:
            return await self._claw_back_commission(effect, source, note, now)

        counters = {
            name: Decimal(value)
            for name, value in ((effect.previous_state or {}).get("counters") or {}).items()
        }

        if effect_type == LedgerEffectType.BALANCE_CREDIT:
            reversal_tx = await self.ledger.post_debit(
                effect.user_id,
                effect.amount,
                TransactionType.REVERSAL.value,
                occurred_at=now,
                counters=counters,
                source_transaction_id=source.id,
                description=note,
            )
            reversal_tx.amount = -effect.amount
        else:
            reversal_tx = await self.ledger.post_credit(
                effect.user_id,
                effect.amount,
                TransactionType.REVERSAL.value,
                occurred_at=now,
                counters=counters,
                source_transaction_id=source.id,
                description=note,
            )
        await self.session.flush()
        return reversal_tx

    async def _claw_back_commission(
        self,
        effect: LedgerEffect,
        source: Transaction,
        note: str,
        now: datetime,
    ) -> Transaction:
        """Take back a commission payout and undo its edge accrual."""
        amount = effect.amount
        reversal_tx = await self.ledger.post_debit(
            effect.user_id,
            amount,
            TransactionType.REVERSAL.value,
            occurred_at=now,
            counters={"total_commission": amount, "referral_earnings": amount},
            source_transaction_id=effect.commission_transaction_id,
            referral_id=effect.referral_id,
            description=note,
        )
        reversal_tx.amount = -amount

        commission_tx = None
        if effect.commission_transaction_id is not None:
            commission_tx = await self.transaction_repo.get_by_id(
                effect.commission_transaction_id
            )
            if commission_tx is not None:
                commission_tx.status = TransactionStatus.REVERSED.value

        if effect.referral_id is not None:
            await self.referral_repo.add_total_earned(effect.referral_id, -amount)
            await self.earning_repo.create(
                referral_id=effect.referral_id,
                event_type=TransactionType.REVERSAL.value,
                level=commission_tx.level if commission_tx and commission_tx.level else 0,
                rate=commission_tx.rate if commission_tx and commission_tx.rate else Decimal("0"),
                source_amount=source.amount,
                amount=-amount,
                source_transaction_id=source.id,
                commission_transaction_id=effect.commission_transaction_id,
                created_at=now,
            )

        await self.session.flush()
        return reversal_tx
