"""
Referral model.

Directed edge from referrer to referred user. A user has at most one
incoming edge.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import ReferralStatus
from app.models.types import MoneyType


class Referral(Base):
    """Referral edge with activation flags and accrued commission."""

    __tablename__ = "referrals"
    __table_args__ = (
        CheckConstraint(
            'referrer_id != referred_user_id', name='check_referral_not_self'
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Edge endpoints
    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    referrer_email: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    referred_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    referred_email: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )

    # State
    status: Mapped[str] = mapped_column(
        String(16), default=ReferralStatus.PENDING.value, nullable=False, index=True
    )
    has_deposited: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    has_purchased: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    activation_amount: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Accrual
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Referral(id={self.id}, referrer_id={self.referrer_id}, "
            f"referred_user_id={self.referred_user_id}, status={self.status})>"
        )
