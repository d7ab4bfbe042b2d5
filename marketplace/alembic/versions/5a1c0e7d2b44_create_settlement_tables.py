"""create_settlement_tables

Revision ID: 5a1c0e7d2b44
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5a1c0e7d2b44'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


user_role = sa.Enum('ADMIN', 'CREATOR', 'CONSUMER', name='userrole')
creator_status = sa.Enum('PENDING', 'ACTIVE', 'SUSPENDED', name='creatorstatus')
pricing_model = sa.Enum('FREE', 'PURCHASE', 'SUBSCRIPTION', 'BOTH', name='pricingmodel')
content_status = sa.Enum('DRAFT', 'PUBLISHED', 'SCHEDULED', 'DELETED', name='contentstatus')
content_visibility = sa.Enum('PUBLIC', 'UNLISTED', 'SUBSCRIBERS_ONLY', name='contentvisibility')
purchase_status = sa.Enum('PENDING', 'COMPLETED', 'REFUNDED', 'FAILED', name='purchasestatus')
subscription_status = sa.Enum('ACTIVE', 'EXPIRED', 'CANCELED', name='subscriptionstatus')
payout_method = sa.Enum('BANK', 'PAYPAL', 'TON', name='payoutmethod')
payout_status = sa.Enum('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED', name='payoutstatus')
transaction_type = sa.Enum('PURCHASE', 'SUBSCRIPTION', 'PAYOUT', 'REFUND', 'AFFILIATE', name='transactiontype')
transaction_status = sa.Enum('PENDING', 'COMPLETED', 'REFUNDED', 'FAILED', name='transactionstatus')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('hashed_password', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'creator_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False, unique=True),
        sa.Column('status', creator_status, nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 4), nullable=True),
        sa.Column('subscription_enabled', sa.Boolean(), nullable=False),
        sa.Column('subscription_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('total_revenue', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_subscribers', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'content',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('creator_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('pricing_model', pricing_model, nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=True),
        sa.Column('status', content_status, nullable=False),
        sa.Column('visibility', content_visibility, nullable=False),
        sa.Column('purchase_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_content_creator_id', 'content', ['creator_id'])

    op.create_table(
        'purchases',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('buyer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('content_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('content.id'), nullable=False),
        sa.Column('creator_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('platform_commission', sa.Numeric(12, 2), nullable=False),
        sa.Column('creator_earnings', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=False),
        sa.Column('payment_id', sa.String(), nullable=True),
        sa.Column('idempotency_key', sa.String(), nullable=False),
        sa.Column('status', purchase_status, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_purchases_buyer_id', 'purchases', ['buyer_id'])
    op.create_index('ix_purchases_creator_id', 'purchases', ['creator_id'])
    op.create_index(
        'uq_purchases_buyer_content_completed',
        'purchases',
        ['buyer_id', 'content_id'],
        unique=True,
        postgresql_where=sa.text("status = 'COMPLETED'"),
    )

    op.create_table(
        'subscriptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('subscriber_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('creator_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('status', subscription_status, nullable=False),
        sa.Column('monthly_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expiration_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('total_paid', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('renewal_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_subscriptions_subscriber_id', 'subscriptions', ['subscriber_id'])
    op.create_index('ix_subscriptions_creator_id', 'subscriptions', ['creator_id'])
    op.create_index(
        'uq_subscriptions_subscriber_creator_active',
        'subscriptions',
        ['subscriber_id', 'creator_id'],
        unique=True,
        postgresql_where=sa.text("status = 'ACTIVE'"),
    )

    op.create_table(
        'payouts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('creator_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('fee', sa.Numeric(12, 2), nullable=False),
        sa.Column('method', payout_method, nullable=False),
        sa.Column('destination', sa.String(), nullable=False),
        sa.Column('instant', sa.Boolean(), nullable=False),
        sa.Column('status', payout_status, nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_payouts_creator_id', 'payouts', ['creator_id'])

    op.create_table(
        'transactions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('type', transaction_type, nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=True),
        sa.Column('payment_id', sa.String(), nullable=True),
        sa.Column('status', transaction_status, nullable=False),
        sa.Column('metadata_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])


def downgrade() -> None:
    op.drop_table('transactions')
    op.drop_table('payouts')
    op.drop_table('subscriptions')
    op.drop_table('purchases')
    op.drop_table('content')
    op.drop_table('creator_profiles')
    op.drop_table('users')
    for enum_type in (
        transaction_status, transaction_type, payout_status, payout_method, subscription_status,
        purchase_status, content_visibility, content_status, pricing_model, creator_status, user_role,
    ):
        enum_type.drop(op.get_bind(), checkfirst=True)
