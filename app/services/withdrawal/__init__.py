"""
Withdrawal services package.

- withdrawal_balance_manager: fee calculation, debit and refund
- withdrawal_request_handler: withdrawal request creation
- withdrawal_lifecycle_handler: approval and rejection
"""
