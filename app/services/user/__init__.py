"""
User service module.

Provides account management: registration with referral codes, lookups,
payout methods and account summaries.

Structure:
- core.py: Core user retrieval and account status
- registration.py: User registration with referral support
- statistics.py: Account summary and balance figures
- payment_methods.py: Payout method management

Usage:
    from app.services.user import UserService

    user_service = UserService(session)
    user = await user_service.register_user("a@example.com", referral_code="AB12CD34")
    summary = await user_service.get_account_summary(user.id)
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.base_service import BaseService, service_operation
from app.services.user.core import UserServiceCore
from app.services.user.payment_methods import UserPaymentMethodMixin
from app.services.user.registration import UserRegistrationMixin
from app.services.user.statistics import UserStatisticsMixin


class UserService(
    BaseService,
    UserServiceCore,
    UserRegistrationMixin,
    UserStatisticsMixin,
    UserPaymentMethodMixin,
):
    """
    Combined user service.

    Inherits from all user service mixins to provide complete functionality.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize user service with all mixins.

        Args:
            session: Database session
        """
        BaseService.__init__(self, session)
        UserServiceCore.__init__(self, session)
        UserRegistrationMixin.__init__(self, session)
        UserStatisticsMixin.__init__(self, session)
        UserPaymentMethodMixin.__init__(self, session)

    @service_operation
    async def create_user(
        self,
        email: str,
        display_name: str | None = None,
        referral_code: str | None = None,
    ):
        """
        Register a user and commit.

        Returns:
            ServiceResult with the created User
        """
        return await self.register_user(email, display_name, referral_code)

    @service_operation
    async def create_payment_method(
        self,
        user_id: int,
        method: str,
        account_number: str,
        account_name: str | None = None,
    ):
        """
        Register a payout destination and commit.

        Returns:
            ServiceResult with the created PaymentMethod
        """
        return await self.add_payment_method(
            user_id, method, account_number, account_name
        )


__all__ = ["UserService"]
