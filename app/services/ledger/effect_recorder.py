"""
Reverse-effect recording.

Every mutation made while applying an approved deposit or withdrawal is
appended to that transaction's effect list, in application order, so a
reversal can undo exactly what was done.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import LedgerEffectType
from app.models.ledger_effect import LedgerEffect
from app.repositories.ledger_effect_repository import LedgerEffectRepository
from app.services.referral.commission_engine import CommissionResult
from app.services.referral.chain_manager import ActivationOutcome


class EffectRecorder:
    """Appends LedgerEffect rows for one source transaction."""

    def __init__(
        self,
        session: AsyncSession,
        source_transaction_id: int,
        occurred_at: datetime | None = None,
    ) -> None:
        """
        Initialize effect recorder.

        Args:
            session: Database session
            source_transaction_id: Transaction the effects belong to
            occurred_at: Timestamp stored on created rows
        """
        self.session = session
        self.source_transaction_id = source_transaction_id
        self.occurred_at = occurred_at
        self.effect_repo = LedgerEffectRepository(session)
        self._next_sequence: int | None = None

    async def record(
        self,
        effect_type: LedgerEffectType,
        user_id: int | None = None,
        amount: Decimal = Decimal("0"),
        referral_id: int | None = None,
        commission_transaction_id: int | None = None,
        previous_state: dict[str, Any] | None = None,
    ) -> LedgerEffect:
        """
        Append one effect.

        Args:
            effect_type: Kind of mutation
            user_id: Affected user
            amount: Amount moved
            referral_id: Affected referral edge
            commission_transaction_id: Commission transaction created
            previous_state: State needed to restore the edge

        Returns:
            Created effect
        """
        if self._next_sequence is None:
            self._next_sequence = await self.effect_repo.next_sequence(
                self.source_transaction_id
            )

        fields: dict[str, Any] = {}
        if self.occurred_at is not None:
            fields["created_at"] = self.occurred_at

        effect = await self.effect_repo.create(
            source_transaction_id=self.source_transaction_id,
            sequence=self._next_sequence,
            effect_type=effect_type.value,
            user_id=user_id,
            amount=amount,
            referral_id=referral_id,
            commission_transaction_id=commission_transaction_id,
            previous_state=previous_state,
            **fields,
        )
        self._next_sequence += 1
        return effect

    async def record_activation(self, outcome: ActivationOutcome | None) -> None:
        """Record an edge activation if one happened."""
        if outcome is None:
            return
        await self.record(
            LedgerEffectType.REFERRAL_ACTIVATION,
            referral_id=outcome.referral_id,
            previous_state=outcome.previous_state,
        )

    async def record_commissions(self, result: CommissionResult) -> None:
        """Record each commission payout of a walk."""
        for payout in result.payouts:
            await self.record(
                LedgerEffectType.COMMISSION_PAYOUT,
                user_id=payout.referrer_id,
                amount=payout.amount,
                referral_id=payout.referral_id,
                commission_transaction_id=payout.transaction_id,
            )
