"""
User repository.

Data access layer for User model, including the atomic balance
statements used by the ledger.
"""

from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> User | None:
        """
        Get user by email (case-insensitive).

        Args:
            email: Email address

        Returns:
            User or None if not found
        """
        return await self.get_by(email=email.strip().lower())

    async def get_by_referral_code(
        self, referral_code: str
    ) -> User | None:
        """
        Get user by referral code.

        Args:
            referral_code: Referral code (case-insensitive)

        Returns:
            User or None if not found
        """
        return await self.get_by(referral_code=referral_code.strip().upper())

    async def referral_code_exists(self, referral_code: str) -> bool:
        """Check whether a referral code is already taken."""
        return await self.exists(referral_code=referral_code)

    async def increment_balance(
        self,
        user_id: int,
        amount: Decimal,
        **counters: Decimal | int,
    ) -> Decimal | None:
        """
        Atomically add to balance in a single UPDATE ... RETURNING.

        Args:
            user_id: User ID
            amount: Signed amount to add
            **counters: Extra numeric columns to increment in the same statement

        Returns:
            Balance after the update, or None if user does not exist
        """
        values = {"balance": User.balance + amount}
        for column, delta in counters.items():
            values[column] = getattr(User, column) + delta

        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .returning(User.balance)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def decrement_balance_if_sufficient(
        self,
        user_id: int,
        amount: Decimal,
        **counters: Decimal | int,
    ) -> Decimal | None:
        """
        Atomically subtract from balance only if funds are sufficient.

        The sufficiency check and the write are one statement, so two
        concurrent debits can never both pass.

        Args:
            user_id: User ID
            amount: Positive amount to subtract
            **counters: Extra numeric columns to decrement in the same statement

        Returns:
            Balance after the update, or None if no row matched
        """
        values = {"balance": User.balance - amount}
        for column, delta in counters.items():
            values[column] = getattr(User, column) - delta

        stmt = (
            update(User)
            .where(User.id == user_id, User.balance >= amount)
            .values(**values)
            .returning(User.balance)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def increment_counters(
        self, user_id: int, **counters: Decimal | int
    ) -> bool:
        """
        Atomically increment aggregate columns without touching balance.

        Args:
            user_id: User ID
            **counters: Column deltas (negative to decrement)

        Returns:
            True if the user exists
        """
        values = {
            column: getattr(User, column) + delta
            for column, delta in counters.items()
        }
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_balance(self, user_id: int) -> Decimal | None:
        """
        Read the current balance directly from the database.

        Args:
            user_id: User ID

        Returns:
            Balance or None if user does not exist
        """
        stmt = select(User.balance).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
