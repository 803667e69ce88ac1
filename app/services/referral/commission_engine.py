"""
Referral commission engine.

Walks up the referral graph from the user who triggered a monetary event
and pays each eligible ancestor a tiered commission. The walk runs inside
the caller's unit of work; each level's payment is isolated in a
SAVEPOINT so a failure truncates the walk without undoing earlier levels.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    COMMISSION_EVENT_TYPES,
    COMMISSION_MIN_PAYABLE,
)
from app.models.enums import (
    CommissionEventType,
    ReferralStatus,
    TransactionType,
)
from app.models.referral import Referral
from app.models.user import User
from app.repositories.referral_earning_repository import (
    ReferralEarningRepository,
)
from app.repositories.referral_repository import ReferralRepository
from app.repositories.transaction_repository import TransactionRepository
from app.repositories.user_repository import UserRepository
from app.services.ledger.ledger_service import LedgerService
from app.services.referral.config import (
    COMMISSION_TIERS,
    REFERRAL_DEPTH,
    CommissionTier,
    tier_for,
)
from app.utils.datetime_utils import business_day_start, utc_now
from app.utils.money import quantize_money, require_positive


# Skip reasons
SKIP_INACTIVE_REFERRER = "inactive_referrer"
SKIP_NO_TIER = "no_tier"
SKIP_BELOW_MINIMUM = "below_minimum"
SKIP_CAP_EXCEEDED = "cap_exceeded"


@dataclass
class CommissionPayout:
    """Commission paid to one ancestor."""

    level: int
    referrer_id: int
    referral_id: int
    tier: str
    rate: Decimal
    amount: Decimal
    transaction_id: int


@dataclass
class CommissionSkip:
    """Ancestor passed over by the walk."""

    level: int
    referrer_id: int
    reason: str


@dataclass
class CommissionResult:
    """Result of one commission walk."""

    event_type: str
    source_amount: Decimal
    payouts: list[CommissionPayout] = field(default_factory=list)
    skipped: list[CommissionSkip] = field(default_factory=list)
    truncated: bool = False

    @property
    def total_paid(self) -> Decimal:
        """Sum of all payouts."""
        return sum((p.amount for p in self.payouts), Decimal("0"))


class CommissionEngine:
    """Multi-level commission distribution."""

    def __init__(
        self,
        session: AsyncSession,
        tiers: tuple[CommissionTier, ...] = COMMISSION_TIERS,
        depth: int = REFERRAL_DEPTH,
    ) -> None:
        """
        Initialize commission engine.

        Args:
            session: Database session
            tiers: Commission tier table
            depth: Number of levels to walk
        """
        self.session = session
        self.tiers = tiers
        self.depth = depth
        self.referral_repo = ReferralRepository(session)
        self.user_repo = UserRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.earning_repo = ReferralEarningRepository(session)
        self.ledger = LedgerService(session)

    async def distribute(
        self,
        user_id: int,
        source_amount: Decimal,
        event_type: CommissionEventType,
        source_transaction_id: int | None = None,
        now: datetime | None = None,
    ) -> CommissionResult:
        """
        Pay commissions up the referral chain for one monetary event.

        Args:
            user_id: User who triggered the event
            source_amount: Event amount commissions are computed from
            event_type: deposit, withdrawal or purchase
            source_transaction_id: Transaction that triggered the walk
            now: Event time used for the daily cap and records

        Returns:
            CommissionResult listing payouts and skipped ancestors
        """
        source_amount = require_positive(source_amount, "source_amount")
        now = now or utc_now()
        result = CommissionResult(
            event_type=event_type.value, source_amount=source_amount
        )

        if event_type.value not in COMMISSION_EVENT_TYPES:
            logger.debug(
                "Commission disabled for event type",
                extra={"event_type": event_type.value},
            )
            return result

        day_start = business_day_start(now)
        current_user_id = user_id

        for level in range(1, self.depth + 1):
            edge = await self.referral_repo.get_by_referred_user(
                current_user_id, status=ReferralStatus.ACTIVE.value
            )
            if edge is None:
                break

            referrer = await self.user_repo.get_for_update(edge.referrer_id)
            if referrer is None:
                logger.warning(
                    "Referrer record missing, commission walk truncated",
                    extra={"referral_id": edge.id, "level": level},
                )
                result.truncated = True
                break

            current_user_id = referrer.id

            if not referrer.is_active:
                result.skipped.append(
                    CommissionSkip(level, referrer.id, SKIP_INACTIVE_REFERRER)
                )
                continue

            active_count = await self.referral_repo.count_active_by_referrer(
                referrer.id
            )
            tier = tier_for(active_count, self.tiers)
            if tier is None:
                result.skipped.append(
                    CommissionSkip(level, referrer.id, SKIP_NO_TIER)
                )
                continue

            amount = quantize_money(source_amount * tier.rate)
            if amount < COMMISSION_MIN_PAYABLE:
                result.skipped.append(
                    CommissionSkip(level, referrer.id, SKIP_BELOW_MINIMUM)
                )
                continue

            paid_today = await self.transaction_repo.sum_commission_since(
                referrer.id, day_start
            )
            if paid_today + amount > tier.daily_cap:
                logger.info(
                    "Commission skipped: daily cap reached",
                    extra={
                        "referrer_id": referrer.id,
                        "tier": tier.name,
                        "paid_today": str(paid_today),
                        "amount": str(amount),
                    },
                )
                result.skipped.append(
                    CommissionSkip(level, referrer.id, SKIP_CAP_EXCEEDED)
                )
                continue

            try:
                async with self.session.begin_nested():
                    payout = await self._pay(
                        referrer=referrer,
                        edge=edge,
                        level=level,
                        tier=tier,
                        amount=amount,
                        source_amount=source_amount,
                        event_type=event_type,
                        source_transaction_id=source_transaction_id,
                        now=now,
                    )
            except SQLAlchemyError as e:
                logger.error(
                    f"Commission payment failed, walk truncated: {e}",
                    extra={
                        "referrer_id": referrer.id,
                        "level": level,
                        "source_transaction_id": source_transaction_id,
                    },
                )
                result.truncated = True
                break

            result.payouts.append(payout)

        logger.info(
            "Commission walk finished",
            extra={
                "user_id": user_id,
                "event_type": event_type.value,
                "source_transaction_id": source_transaction_id,
                "payouts": len(result.payouts),
                "total_paid": str(result.total_paid),
                "truncated": result.truncated,
            },
        )
        return result

    async def _pay(
        self,
        referrer: User,
        edge: Referral,
        level: int,
        tier: CommissionTier,
        amount: Decimal,
        source_amount: Decimal,
        event_type: CommissionEventType,
        source_transaction_id: int | None,
        now: datetime,
    ) -> CommissionPayout:
        """Credit one commission and record it on the edge."""
        tx = await self.ledger.post_credit(
            referrer.id,
            amount,
            TransactionType.REFERRAL_COMMISSION.value,
            occurred_at=now,
            counters={"total_commission": amount, "referral_earnings": amount},
            source_transaction_id=source_transaction_id,
            referral_id=edge.id,
            level=level,
            rate=tier.rate,
            description=(
                f"Level {level} {event_type.value} commission "
                f"({tier.name}, {tier.rate * 100:.2f}%)"
            ),
        )
        await self.referral_repo.add_total_earned(edge.id, amount)
        await self.earning_repo.create(
            referral_id=edge.id,
            event_type=event_type.value,
            level=level,
            rate=tier.rate,
            source_amount=source_amount,
            amount=amount,
            source_transaction_id=source_transaction_id,
            commission_transaction_id=tx.id,
            created_at=now,
        )

        return CommissionPayout(
            level=level,
            referrer_id=referrer.id,
            referral_id=edge.id,
            tier=tier.name,
            rate=tier.rate,
            amount=amount,
            transaction_id=tx.id,
        )
