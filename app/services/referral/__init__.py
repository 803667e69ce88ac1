"""
Referral services package.

Contains modular services for referral processing:
- config: commission tier table and tier selection
- chain_manager: edge registration and activation
- commission_engine: multi-level commission walk
- query_manager: referral overview and earnings history
- statistics: platform referral figures and top referrers
"""
