"""
Payment method repository.

Data access layer for PaymentMethod model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payment_method import PaymentMethod
from app.repositories.base import BaseRepository


class PaymentMethodRepository(BaseRepository[PaymentMethod]):
    """Payment method repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payment method repository."""
        super().__init__(PaymentMethod, session)

    async def get_for_user(
        self, payment_method_id: int, user_id: int
    ) -> PaymentMethod | None:
        """
        Get an active payment method owned by a user.

        Args:
            payment_method_id: Payment method ID
            user_id: Owner user ID

        Returns:
            PaymentMethod or None
        """
        return await self.get_by(
            id=payment_method_id, user_id=user_id, is_active=True
        )
