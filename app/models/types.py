"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for amounts, balances, commissions
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Commission rate as a fraction (e.g., 0.0500 = 5%)
# Precision: 6 digits total, 4 after decimal point
RateType = DECIMAL(6, 4)

# Return rate percentage for products (e.g., 150.00%)
# Precision: 7 digits total, 2 after decimal point
PercentType = DECIMAL(7, 2)
