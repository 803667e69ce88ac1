"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.base import Base
from app.models.enums import (
    CommissionEventType,
    HoldingStatus,
    LedgerEffectType,
    ReferralStatus,
    TransactionStatus,
    TransactionType,
)
from app.models.job_lease import JobLease
from app.models.ledger_effect import LedgerEffect
from app.models.payment_method import PaymentMethod
from app.models.product import Product
from app.models.referral import Referral
from app.models.referral_earning import ReferralEarning
from app.models.transaction import Transaction
from app.models.user import User
from app.models.user_product import UserProduct


__all__ = [
    "Base",
    # Enums
    "CommissionEventType",
    "HoldingStatus",
    "LedgerEffectType",
    "ReferralStatus",
    "TransactionStatus",
    "TransactionType",
    # Core
    "User",
    "Transaction",
    "LedgerEffect",
    # Referrals
    "Referral",
    "ReferralEarning",
    # Products
    "Product",
    "UserProduct",
    "PaymentMethod",
    # System
    "JobLease",
]
