"""
Referral chain management module.

Handles referral edge registration and activation.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.enums import (
    CommissionEventType,
    ReferralStatus,
    TransactionType,
)
from app.models.referral import Referral
from app.models.user import User
from app.repositories.product_repository import UserProductRepository
from app.repositories.referral_repository import ReferralRepository
from app.repositories.transaction_repository import TransactionRepository
from app.repositories.user_repository import UserRepository
from app.services.ledger.ledger_service import LedgerService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    AlreadyReferredError,
    InvalidReferralCodeError,
    NotFoundError,
    SelfReferralNotAllowedError,
    ValidationError,
)
from app.utils.money import require_positive

# Upper bound for the loop check walk
MAX_UPLINE_SCAN = 1000

ACTIVATION_FLAGS = {
    CommissionEventType.DEPOSIT: "has_deposited",
    CommissionEventType.PURCHASE: "has_purchased",
}


@dataclass
class ActivationOutcome:
    """Edge activation performed by a qualifying event."""

    referral_id: int
    referrer_id: int
    previous_state: dict[str, Any]


class ReferralChainManager:
    """Manages referral edges."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize chain manager."""
        self.session = session
        self.referral_repo = ReferralRepository(session)
        self.user_repo = UserRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.holding_repo = UserProductRepository(session)
        self.ledger = LedgerService(session)

    async def get_upline_ids(
        self, user_id: int, limit: int = MAX_UPLINE_SCAN
    ) -> list[int]:
        """
        Get the ancestors of a user, nearest first.

        Args:
            user_id: Starting user
            limit: Maximum number of ancestors to follow

        Returns:
            List of ancestor user IDs
        """
        upline: list[int] = []
        seen = {user_id}
        current = user_id
        while len(upline) < limit:
            referrer_id = await self.referral_repo.get_referrer_id(current)
            if referrer_id is None or referrer_id in seen:
                break
            upline.append(referrer_id)
            seen.add(referrer_id)
            current = referrer_id
        return upline

    async def register_edge(
        self,
        referred_user_id: int,
        referrer_code: str,
        referred_email: str | None = None,
    ) -> Referral:
        """
        Create a pending referral edge from the code owner to a user.

        Args:
            referred_user_id: User being referred
            referrer_code: Referral code of the inviter
            referred_email: Optional email snapshot of the referred user

        Returns:
            Created referral

        Raises:
            ValidationError: If the code is empty or the edge would form a loop
            NotFoundError: If the referred user does not exist
            InvalidReferralCodeError: If no user owns the code
            SelfReferralNotAllowedError: If the code belongs to the user
            AlreadyReferredError: If the user already has a referrer
        """
        if not referrer_code or not referrer_code.strip():
            raise ValidationError("Referral code is required")

        referred = await self.user_repo.get_by_id(referred_user_id)
        if referred is None:
            raise NotFoundError(
                f"User {referred_user_id} not found", user_id=referred_user_id
            )

        referrer = await self.user_repo.get_by_referral_code(referrer_code)
        if referrer is None:
            raise InvalidReferralCodeError("Invalid referral code")

        if referrer.id == referred_user_id:
            raise SelfReferralNotAllowedError("You cannot use your own referral code")

        if await self.referral_repo.exists(referred_user_id=referred_user_id):
            raise AlreadyReferredError("User already has a referrer")

        upline = await self.get_upline_ids(referrer.id)
        if referred_user_id in upline:
            logger.warning(
                "Referral loop detected",
                extra={
                    "referred_user_id": referred_user_id,
                    "referrer_id": referrer.id,
                    "chain_ids": upline,
                },
            )
            raise ValidationError("Referral chain would form a loop")

        try:
            async with self.session.begin_nested():
                referral = await self.referral_repo.create(
                    referrer_id=referrer.id,
                    referrer_email=referrer.email,
                    referred_user_id=referred_user_id,
                    referred_email=referred_email or referred.email,
                    status=ReferralStatus.PENDING.value,
                    total_earned=Decimal("0"),
                )
        except IntegrityError as exc:
            raise AlreadyReferredError("User already has a referrer") from exc

        await self.user_repo.increment_counters(referrer.id, total_referrals=1)
        await self._pay_signup_bonus(referrer, referral)

        logger.info(
            "Referral edge created",
            extra={
                "referral_id": referral.id,
                "referrer_id": referrer.id,
                "referred_user_id": referred_user_id,
            },
        )
        return referral

    async def activate_edge(
        self,
        referred_user_id: int,
        source_amount: Decimal,
        qualifying_event: CommissionEventType,
        now: datetime | None = None,
    ) -> ActivationOutcome | None:
        """
        Activate the user's incoming edge or mark a new qualifying event.

        A pending edge is flipped to active by one conditional UPDATE, so it
        is activated at most once. On an already active edge only the event
        flag (has_deposited / has_purchased) is set when still unset.
        Missing edges and repeated events are a no-op.

        Args:
            referred_user_id: User whose edge is activated
            source_amount: Qualifying amount
            qualifying_event: deposit or purchase
            now: Activation time

        Returns:
            ActivationOutcome with the previous edge state, or None
        """
        edge = await self.referral_repo.get_by_referred_user(referred_user_id)
        if edge is None:
            return None

        flag_name = ACTIVATION_FLAGS.get(qualifying_event)
        flags = {flag_name: True} if flag_name else {}
        previous_state = {
            "status": edge.status,
            "has_deposited": edge.has_deposited,
            "has_purchased": edge.has_purchased,
        }

        if edge.status == ReferralStatus.PENDING.value:
            updated = await self.referral_repo.activate_pending(
                referred_user_id,
                amount=require_positive(source_amount, "source_amount"),
                activated_at=now or utc_now(),
                **flags,
            )
            if updated == 0:
                return None
            message = "Referral edge activated"
        elif (
            edge.status == ReferralStatus.ACTIVE.value
            and flag_name
            and not previous_state[flag_name]
        ):
            await self.referral_repo.set_flags(edge.id, **flags)
            message = "Referral edge flag set"
        else:
            return None

        logger.info(
            message,
            extra={
                "referral_id": edge.id,
                "referred_user_id": referred_user_id,
                "event": qualifying_event.value,
            },
        )
        return ActivationOutcome(
            referral_id=edge.id,
            referrer_id=edge.referrer_id,
            previous_state=previous_state,
        )

    async def restore_edge(
        self,
        referral_id: int,
        previous_state: dict[str, Any],
        source_transaction_id: int | None = None,
    ) -> None:
        """
        Undo an activation recorded by activate_edge.

        A flag set by the activation is cleared only when no other
        qualifying event backs it: another approved deposit for
        has_deposited, any holding for has_purchased. The edge returns to
        pending only when it was pending before and no flag remains set.

        Args:
            referral_id: Referral edge ID
            previous_state: State captured by activate_edge
            source_transaction_id: Transaction being reversed
        """
        edge = await self.referral_repo.get_for_update(referral_id)
        if edge is None:
            return

        referred_id = edge.referred_user_id
        if edge.has_deposited and not previous_state.get("has_deposited", False):
            edge.has_deposited = await self.transaction_repo.has_other_approved_deposit(
                referred_id, exclude_id=source_transaction_id
            )
        if edge.has_purchased and not previous_state.get("has_purchased", False):
            edge.has_purchased = await self.holding_repo.has_any_holding(referred_id)

        was_pending = (
            previous_state.get("status", ReferralStatus.PENDING.value)
            == ReferralStatus.PENDING.value
        )
        if was_pending and not (edge.has_deposited or edge.has_purchased):
            edge.status = ReferralStatus.PENDING.value
            edge.activated_at = None
            edge.activation_amount = None
        await self.session.flush()

        logger.info(
            "Referral edge restored",
            extra={
                "referral_id": referral_id,
                "status": edge.status,
                "has_deposited": edge.has_deposited,
                "has_purchased": edge.has_purchased,
            },
        )

    async def _pay_signup_bonus(self, referrer: User, referral: Referral) -> None:
        """Credit the optional signup bonus to the referrer."""
        bonus = settings.referral_signup_bonus
        if bonus <= 0:
            return
        await self.ledger.post_credit(
            referrer.id,
            bonus,
            TransactionType.REFERRAL_BONUS.value,
            counters={"total_commission": bonus, "referral_earnings": bonus},
            referral_id=referral.id,
            description="Referral signup bonus",
        )
