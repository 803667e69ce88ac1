"""
User registration functionality.

Handles new user registration with referral code support.
"""

import secrets

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
    REFERRAL_CODE_MAX_ATTEMPTS,
)
from app.config.settings import settings
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.services.referral.chain_manager import ReferralChainManager
from app.utils.exceptions import LedgerError, ValidationError


def generate_referral_code(length: int = REFERRAL_CODE_LENGTH) -> str:
    """Generate a random upper-case alphanumeric referral code."""
    return "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length)
    )


class UserRegistrationMixin:
    """
    Mixin for user registration functionality.

    Handles new user registration with referral support.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user registration mixin."""
        self.session = session
        self.user_repo = UserRepository(session)
        self.chain_manager = ReferralChainManager(session)

    async def _unique_referral_code(self) -> str:
        """
        Generate a referral code not used by any user yet.

        Raises:
            LedgerError: If no free code was found
        """
        for _ in range(REFERRAL_CODE_MAX_ATTEMPTS):
            code = generate_referral_code()
            if not await self.user_repo.referral_code_exists(code):
                return code
        raise LedgerError("Could not generate a unique referral code")

    async def register_user(
        self,
        email: str,
        display_name: str | None = None,
        referral_code: str | None = None,
    ) -> User:
        """
        Register new user with optional referrer.

        The account and the pending referral edge are created in the
        caller's transaction; nothing is committed here.

        Args:
            email: Unique email address
            display_name: Optional display name
            referral_code: Referral code of the inviter

        Returns:
            Created user

        Raises:
            ValidationError: If the email is missing or already registered
            InvalidReferralCodeError: If the referral code is unknown
        """
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValidationError("A valid email is required")

        if await self.user_repo.get_by_email(email):
            raise ValidationError("Email is already registered")

        code = await self._unique_referral_code()
        try:
            async with self.session.begin_nested():
                user = await self.user_repo.create(
                    email=email,
                    display_name=display_name,
                    referral_code=code,
                    balance=settings.initial_user_balance,
                )
        except IntegrityError as exc:
            raise ValidationError("Email is already registered") from exc

        if referral_code:
            await self.chain_manager.register_edge(
                user.id, referral_code, referred_email=email
            )

        logger.info(
            "User registered",
            extra={
                "user_id": user.id,
                "has_referrer": bool(referral_code),
            },
        )
        return user
