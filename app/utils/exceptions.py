"""
Exception handling utilities.

Defines the domain error taxonomy raised by ledger, referral and
approval operations. Every error carries a stable ``error_code`` which
service facades copy into ``ServiceResult``.
"""


class LedgerError(Exception):
    """Base class for domain errors surfaced to callers."""

    error_code = "LEDGER_ERROR"

    def __init__(self, message: str, **details: object) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(LedgerError):
    """Raised when input is missing or malformed."""

    error_code = "VALIDATION_ERROR"


class NotFoundError(LedgerError):
    """Raised when a referenced record does not exist."""

    error_code = "NOT_FOUND"


class InsufficientBalanceError(LedgerError):
    """Raised when a debit would take a balance below zero."""

    error_code = "INSUFFICIENT_BALANCE"


class DuplicateIdempotencyKeyError(LedgerError):
    """Raised when an external transaction id was already submitted."""

    error_code = "DUPLICATE_IDEMPOTENCY_KEY"


class AlreadyReferredError(LedgerError):
    """Raised when the user already has a referrer."""

    error_code = "ALREADY_REFERRED"


class SelfReferralNotAllowedError(LedgerError):
    """Raised when a user tries to use their own referral code."""

    error_code = "SELF_REFERRAL_NOT_ALLOWED"


class InvalidReferralCodeError(LedgerError):
    """Raised when no user owns the given referral code."""

    error_code = "INVALID_REFERRAL_CODE"


class InvalidStatusTransitionError(ValidationError):
    """Raised when a status change is not allowed from the current state."""

    error_code = "INVALID_STATUS_TRANSITION"

