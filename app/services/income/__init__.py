"""
Product income services package.

- daily_income_processor: pays one holding its daily income
- purchase_handler: product purchase and holding creation
- income_query: holdings and income history
"""
