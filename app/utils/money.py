"""
Money helpers.

All amounts are Decimal and quantized to the currency minor unit.
"""

from decimal import Decimal

from app.config.business_constants import MONEY_QUANT, MONEY_ROUNDING
from app.utils.exceptions import ValidationError


def quantize_money(value: Decimal | int | str) -> Decimal:
    """
    Round an amount to the currency minor unit (half up).

    Args:
        value: Amount to round

    Returns:
        Quantized Decimal
    """
    return Decimal(value).quantize(MONEY_QUANT, rounding=MONEY_ROUNDING)


def require_positive(value: Decimal | int | str | None, field: str = "amount") -> Decimal:
    """
    Parse and validate a strictly positive amount.

    Args:
        value: Raw amount
        field: Field name used in the error message

    Returns:
        Quantized positive Decimal

    Raises:
        ValidationError: If value is missing, not a number or not positive
    """
    if value is None:
        raise ValidationError(f"{field} is required")
    try:
        amount = quantize_money(value)
    except (ArithmeticError, ValueError, TypeError) as exc:
        raise ValidationError(f"{field} must be a number") from exc
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return amount


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """Return ``percent`` percent of ``amount`` rounded to the minor unit."""
    return quantize_money(amount * percent / Decimal("100"))
