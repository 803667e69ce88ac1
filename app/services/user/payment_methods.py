"""
User payout method functionality.

Handles registration and listing of withdrawal destinations.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payment_method import PaymentMethod
from app.repositories.payment_method_repository import PaymentMethodRepository
from app.repositories.user_repository import UserRepository
from app.utils.exceptions import NotFoundError, ValidationError


class UserPaymentMethodMixin:
    """Mixin for payout method management."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payment method mixin."""
        self.session = session
        self.user_repo = UserRepository(session)
        self.payment_method_repo = PaymentMethodRepository(session)

    async def add_payment_method(
        self,
        user_id: int,
        method: str,
        account_number: str,
        account_name: str | None = None,
    ) -> PaymentMethod:
        """
        Register a payout destination.

        Args:
            user_id: Owner user ID
            method: Method name (e.g. bkash, nagad)
            account_number: Account or wallet number
            account_name: Optional account holder name

        Returns:
            Created payment method

        Raises:
            ValidationError: If method or account number is missing
            NotFoundError: If the user does not exist
        """
        if not method or not account_number:
            raise ValidationError("Method and account number are required")

        if await self.user_repo.get_by_id(user_id) is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        payment_method = await self.payment_method_repo.create(
            user_id=user_id,
            method=method.strip().lower(),
            account_number=account_number.strip(),
            account_name=account_name,
            is_active=True,
        )
        logger.info(
            "Payment method added",
            extra={"user_id": user_id, "payment_method_id": payment_method.id},
        )
        return payment_method

    async def get_payment_methods(self, user_id: int) -> list[PaymentMethod]:
        """Get active payout methods of a user."""
        return await self.payment_method_repo.find_by(
            user_id=user_id, is_active=True
        )
