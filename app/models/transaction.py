"""
Transaction model.

Append-only ledger record for every balance-affecting event.
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
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import TransactionStatus
from app.models.types import MoneyType, RateType


class Transaction(Base):
    """
    Ledger transaction.

    Deposits carry the external payment id as ``external_id`` (unique).
    Commission rows link back to the source transaction and the referral
    edge they were paid through. ``system_error`` rows record scheduler
    failures and may have no user.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint('fee >= 0', name='check_transaction_fee_non_negative'),
        Index('ix_transactions_user_type_created', 'user_id', 'type', 'created_at'),
        Index('ix_transactions_holding_type_created', 'user_product_id', 'type', 'created_at'),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Owner
    user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )

    # Classification
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(16), default=TransactionStatus.PENDING.value, nullable=False, index=True
    )

    # Amounts (signed for reversal rows)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    fee: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    balance_before: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )
    balance_after: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )

    # Deposit idempotency key / payment details
    external_id: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True
    )
    payment_method: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    payment_number: Mapped[str | None] = mapped_column(
        String(128), nullable=True
    )
    payment_method_id: Mapped[int | None] = mapped_column(
        ForeignKey("payment_methods.id", ondelete="SET NULL"), nullable=True
    )

    # Links
    source_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    referral_id: Mapped[int | None] = mapped_column(
        ForeignKey("referrals.id", ondelete="SET NULL"), nullable=True
    )
    user_product_id: Mapped[int | None] = mapped_column(
        ForeignKey("user_products.id", ondelete="SET NULL"), nullable=True
    )
    level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rate: Mapped[Decimal | None] = mapped_column(RateType, nullable=True)

    # Audit
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
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
            f"<Transaction(id={self.id}, user_id={self.user_id}, "
            f"type={self.type}, amount={self.amount}, status={self.status})>"
        )
