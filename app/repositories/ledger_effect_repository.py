"""
Ledger effect repository.

Data access layer for LedgerEffect model.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.ledger_effect import LedgerEffect
from app.repositories.base import BaseRepository


class LedgerEffectRepository(BaseRepository[LedgerEffect]):
    """Ledger effect repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize ledger effect repository."""
        super().__init__(LedgerEffect, session)

    async def next_sequence(self, source_transaction_id: int) -> int:
        """Get the next sequence number for a source transaction."""
        stmt = select(func.coalesce(func.max(LedgerEffect.sequence), 0)).where(
            LedgerEffect.source_transaction_id == source_transaction_id
        )
        result = await self.session.execute(stmt)
        return int(result.scalar() or 0) + 1

    async def get_open_effects_reversed_order(
        self, source_transaction_id: int
    ) -> list[LedgerEffect]:
        """
        Get effects not yet reversed, last applied first.

        Args:
            source_transaction_id: Source transaction ID

        Returns:
            Effects in reverse application order
        """
        stmt = (
            select(LedgerEffect)
            .where(
                LedgerEffect.source_transaction_id == source_transaction_id,
                LedgerEffect.reversed_at.is_(None),
            )
            .order_by(LedgerEffect.sequence.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
