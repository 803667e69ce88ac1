"""Create ledger, referral and daily income schema.

Revision ID: 20261001_000001
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261001_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all ledger tables."""

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('referral_code', sa.String(32), nullable=False),
        sa.Column('balance', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_deposited', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('total_referrals', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_commission', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('referral_earnings', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('balance >= 0', name='check_user_balance_non_negative'),
        sa.CheckConstraint('total_referrals >= 0', name='check_user_total_referrals_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_referral_code', 'users', ['referral_code'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('daily_income', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('total_days', sa.Integer(), nullable=False),
        sa.Column('return_rate', sa.DECIMAL(7, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('price > 0', name='check_product_price_positive'),
        sa.CheckConstraint('total_days > 0', name='check_product_total_days_positive'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'payment_methods',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(64), nullable=False),
        sa.Column('account_number', sa.String(128), nullable=False),
        sa.Column('account_name', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_payment_methods_user_id', 'payment_methods', ['user_id'])

    op.create_table(
        'referrals',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referrer_id', sa.Integer(), nullable=False),
        sa.Column('referrer_email', sa.String(255), nullable=True),
        sa.Column('referred_user_id', sa.Integer(), nullable=False, comment='One incoming edge per user'),
        sa.Column('referred_email', sa.String(255), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('has_deposited', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('has_purchased', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('activation_amount', sa.DECIMAL(18, 8), nullable=True),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_earned', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('referrer_id != referred_user_id', name='check_referral_not_self'),
        sa.ForeignKeyConstraint(['referrer_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['referred_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_referrals_referrer_id', 'referrals', ['referrer_id'])
    op.create_index('ix_referrals_referred_user_id', 'referrals', ['referred_user_id'], unique=True)
    op.create_index('ix_referrals_status', 'referrals', ['status'])

    op.create_table(
        'user_products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('product_price', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('daily_income', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('total_days', sa.Integer(), nullable=False),
        sa.Column('return_rate', sa.DECIMAL(7, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(16), nullable=False, server_default='active'),
        sa.Column('remaining_days', sa.Integer(), nullable=False),
        sa.Column('total_earned', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('purchase_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('last_payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('remaining_days >= 0', name='check_user_product_remaining_days_non_negative'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_user_products_user_id', 'user_products', ['user_id'])
    op.create_index('ix_user_products_product_id', 'user_products', ['product_id'])
    op.create_index('ix_user_products_status_remaining', 'user_products', ['status', 'remaining_days'])

    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('type', sa.String(32), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False, comment='Signed for reversal rows'),
        sa.Column('fee', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('balance_before', sa.DECIMAL(18, 8), nullable=True),
        sa.Column('balance_after', sa.DECIMAL(18, 8), nullable=True),
        sa.Column('external_id', sa.String(255), nullable=True, comment='Deposit idempotency key'),
        sa.Column('payment_method', sa.String(64), nullable=True),
        sa.Column('payment_number', sa.String(128), nullable=True),
        sa.Column('payment_method_id', sa.Integer(), nullable=True),
        sa.Column('source_transaction_id', sa.Integer(), nullable=True),
        sa.Column('referral_id', sa.Integer(), nullable=True),
        sa.Column('user_product_id', sa.Integer(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=True),
        sa.Column('rate', sa.DECIMAL(6, 4), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('fee >= 0', name='check_transaction_fee_non_negative'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['payment_method_id'], ['payment_methods.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['source_transaction_id'], ['transactions.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['referral_id'], ['referrals.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_product_id'], ['user_products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('external_id')
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_type', 'transactions', ['type'])
    op.create_index('ix_transactions_status', 'transactions', ['status'])
    op.create_index('ix_transactions_source_transaction_id', 'transactions', ['source_transaction_id'])
    op.create_index('ix_transactions_user_type_created', 'transactions', ['user_id', 'type', 'created_at'])
    op.create_index('ix_transactions_holding_type_created', 'transactions', ['user_product_id', 'type', 'created_at'])

    op.create_table(
        'referral_earnings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('referral_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(32), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('rate', sa.DECIMAL(6, 4), nullable=False),
        sa.Column('source_amount', sa.DECIMAL(18, 8), nullable=False),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False, comment='Negative for claw-backs'),
        sa.Column('source_transaction_id', sa.Integer(), nullable=True),
        sa.Column('commission_transaction_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['referral_id'], ['referrals.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_transaction_id'], ['transactions.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['commission_transaction_id'], ['transactions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_referral_earnings_referral_id', 'referral_earnings', ['referral_id'])

    op.create_table(
        'ledger_effects',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('source_transaction_id', sa.Integer(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('effect_type', sa.String(32), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('amount', sa.DECIMAL(18, 8), nullable=False, server_default='0'),
        sa.Column('referral_id', sa.Integer(), nullable=True),
        sa.Column('commission_transaction_id', sa.Integer(), nullable=True),
        sa.Column('previous_state', sa.JSON(), nullable=True),
        sa.Column('reversed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['source_transaction_id'], ['transactions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['referral_id'], ['referrals.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['commission_transaction_id'], ['transactions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('source_transaction_id', 'sequence', name='uq_ledger_effect_sequence')
    )
    op.create_index('ix_ledger_effects_source_transaction_id', 'ledger_effects', ['source_transaction_id'])

    op.create_table(
        'job_leases',
        sa.Column('name', sa.String(64), nullable=False),
        sa.Column('holder', sa.String(128), nullable=True),
        sa.Column('acquired_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('name')
    )


def downgrade() -> None:
    """Drop all ledger tables."""
    op.drop_table('job_leases')
    op.drop_index('ix_ledger_effects_source_transaction_id', 'ledger_effects')
    op.drop_table('ledger_effects')
    op.drop_index('ix_referral_earnings_referral_id', 'referral_earnings')
    op.drop_table('referral_earnings')

    op.drop_index('ix_transactions_holding_type_created', 'transactions')
    op.drop_index('ix_transactions_user_type_created', 'transactions')
    op.drop_index('ix_transactions_source_transaction_id', 'transactions')
    op.drop_index('ix_transactions_status', 'transactions')
    op.drop_index('ix_transactions_type', 'transactions')
    op.drop_index('ix_transactions_user_id', 'transactions')
    op.drop_table('transactions')

    op.drop_index('ix_user_products_status_remaining', 'user_products')
    op.drop_index('ix_user_products_product_id', 'user_products')
    op.drop_index('ix_user_products_user_id', 'user_products')
    op.drop_table('user_products')

    op.drop_index('ix_referrals_status', 'referrals')
    op.drop_index('ix_referrals_referred_user_id', 'referrals')
    op.drop_index('ix_referrals_referrer_id', 'referrals')
    op.drop_table('referrals')

    op.drop_index('ix_payment_methods_user_id', 'payment_methods')
    op.drop_table('payment_methods')
    op.drop_table('products')

    op.drop_index('ix_users_referral_code', 'users')
    op.drop_index('ix_users_email', 'users')
    op.drop_table('users')
