"""
UserProduct model.

A user's holding of a product, with the product terms snapshotted at
purchase time.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import HoldingStatus
from app.models.types import MoneyType, PercentType


class UserProduct(Base):
    """Product holding paying daily income for a fixed number of days."""

    __tablename__ = "user_products"
    __table_args__ = (
        CheckConstraint(
            'remaining_days >= 0', name='check_user_product_remaining_days_non_negative'
        ),
        Index('ix_user_products_status_remaining', 'status', 'remaining_days'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Snapshot of product terms
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    daily_income: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    return_rate: Mapped[Decimal] = mapped_column(
        PercentType, default=Decimal("0"), nullable=False
    )

    # Progress
    status: Mapped[str] = mapped_column(
        String(16), default=HoldingStatus.ACTIVE.value, nullable=False
    )
    remaining_days: Mapped[int] = mapped_column(Integer, nullable=False)
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    purchase_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    last_payment_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<UserProduct(id={self.id}, user_id={self.user_id}, "
            f"remaining_days={self.remaining_days}, status={self.status})>"
        )
