"""
Model enumerations.

String enums stored in plain String columns.
"""

from enum import StrEnum


class TransactionType(StrEnum):
    """Ledger transaction types."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PURCHASE = "purchase"
    DAILY_INCOME = "daily_income"
    REFERRAL_BONUS = "referral_bonus"
    REFERRAL_COMMISSION = "referral_commission"
    REVERSAL = "reversal"
    SYSTEM_ERROR = "system_error"


class TransactionStatus(StrEnum):
    """Ledger transaction statuses."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    FAILED = "failed"
    REVERSED = "reversed"


class ReferralStatus(StrEnum):
    """Referral edge statuses."""

    PENDING = "pending"
    ACTIVE = "active"


class HoldingStatus(StrEnum):
    """User product holding statuses."""

    ACTIVE = "active"
    COMPLETED = "completed"


class CommissionEventType(StrEnum):
    """Monetary events that trigger the commission walk."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    PURCHASE = "purchase"


class LedgerEffectType(StrEnum):
    """Reversible side effects recorded for an approved transaction."""

    BALANCE_CREDIT = "balance_credit"
    BALANCE_DEBIT = "balance_debit"
    COMMISSION_PAYOUT = "commission_payout"
    REFERRAL_ACTIVATION = "referral_activation"


# Commission transaction types counted against the daily cap
CAPPED_COMMISSION_TYPES = (
    TransactionType.REFERRAL_COMMISSION,
    TransactionType.REFERRAL_BONUS,
)
