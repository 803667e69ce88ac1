"""
Core user service functionality.

Handles basic user retrieval and account status.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.utils.exceptions import NotFoundError


class UserServiceCore:
    """
    Core user service.

    Provides basic user retrieval and account status methods.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize user service core.

        Args:
            session: Database session
        """
        self.session = session
        self.user_repo = UserRepository(session)

    async def get_by_id(self, user_id: int) -> User | None:
        """
        Get user by ID.

        Args:
            user_id: User ID

        Returns:
            User or None
        """
        return await self.user_repo.get_by_id(user_id)

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email (case-insensitive)."""
        return await self.user_repo.get_by_email(email)

    async def get_by_referral_code(self, referral_code: str) -> User | None:
        """Get user by referral code."""
        return await self.user_repo.get_by_referral_code(referral_code)

    async def set_active(self, user_id: int, is_active: bool) -> User:
        """
        Enable or disable an account.

        Disabled accounts are skipped by the commission walk and fail
        their daily income payouts.

        Args:
            user_id: User ID
            is_active: New status

        Returns:
            Updated user

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.user_repo.update(user_id, is_active=is_active)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", user_id=user_id)

        logger.info(
            "User status changed",
            extra={"user_id": user_id, "is_active": is_active},
        )
        return user

    async def get_total_users(self) -> int:
        """Get total number of users."""
        return await self.user_repo.count()
