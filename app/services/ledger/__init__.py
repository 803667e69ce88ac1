"""
Ledger services package.

- ledger_service: atomic credit/debit paired with transaction records
- effect_recorder: reverse-effect list of approved transactions
- reversal_handler: replay of the effect list to undo a transaction
"""
