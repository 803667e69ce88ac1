"""
Deposit services package.

- deposit_submission_handler: validation and creation of pending deposits
- deposit_approval_handler: approval and rejection of deposits
"""
