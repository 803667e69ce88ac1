"""
Business logic constants for the work-up ledger.

Central location for business rules and constants used across the application.
Values that operators may tune live in settings; this module exposes them
alongside the fixed rules so services import from one place.
"""

from decimal import ROUND_HALF_UP, Decimal

from app.config.settings import settings


# Currency minor unit (all stored amounts are quantized to this)
MONEY_QUANT = Decimal("0.01")
MONEY_ROUNDING = ROUND_HALF_UP

# Referral walk depth (levels above the triggering user)
COMMISSION_DEPTH = settings.commission_depth

# Commissions smaller than this are not paid
COMMISSION_MIN_PAYABLE = settings.commission_min_payable

# Events that trigger the commission walk
COMMISSION_EVENT_TYPES = frozenset(settings.get_commission_event_types())

# Withdrawal rules
WITHDRAWAL_FEE_PERCENT = settings.withdrawal_fee_percent
MIN_WITHDRAWAL_AMOUNT = settings.min_withdrawal_amount

# Referral code alphabet and length
REFERRAL_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
REFERRAL_CODE_LENGTH = settings.referral_code_length
REFERRAL_CODE_MAX_ATTEMPTS = 10

# Daily income scheduler
DAILY_INCOME_INTERVAL_HOURS = settings.daily_income_interval_hours
DAILY_INCOME_JOB_NAME = "daily_income_distribution"
SCHEDULER_LEASE_SECONDS = settings.scheduler_lease_seconds

# Earnings history window for referral overview
REFERRAL_EARNINGS_HISTORY_DAYS = 30
TOP_REFERRERS_LIMIT = 10
