"""create points, distribution and balance tables

Revision ID: c7d1e2f3a4b5
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c7d1e2f3a4b5'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

POINT_CATEGORIES = [
    'like', 'comment', 'share', 'video_upload', 'active_time', 'view',
    'receive_like', 'receive_comment', 'follower', 'gift', 'live_stream', 'watch_live',
]


def money(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(20, 8), **kwargs)


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('handle', sa.String(50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_handle', 'users', ['handle'], unique=True)

    op.create_table(
        'points_days',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        *[
            sa.Column(category, sa.Numeric(18, 4), server_default='0', nullable=False)
            for category in POINT_CATEGORIES
        ],
        sa.Column('total_points', sa.Numeric(18, 4), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'date', name='unique_user_points_day'),
    )
    op.create_index('ix_points_day_date_total', 'points_days', ['date', 'total_points'])

    op.create_table(
        'activity_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(18, 4), nullable=False),
        sa.Column('source_ref', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_activity_user_created', 'activity_logs', ['user_id', 'created_at'])
    op.create_index('ix_activity_category_created', 'activity_logs', ['category', 'created_at'])

    op.create_table(
        'ad_impressions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('ad_type', sa.String(20), nullable=False),
        money('reward_amount', nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_ad_impression_type_created', 'ad_impressions', ['ad_type', 'created_at'])

    op.create_table(
        'daily_revenue_pools',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('date', sa.Date(), nullable=False),
        money('ad_revenue_estimate', server_default='0', nullable=False),
        money('distributable_pool', server_default='0', nullable=False),
        sa.Column('total_points_awarded', sa.Numeric(18, 4), server_default='0', nullable=False),
        sa.Column('value_per_point', sa.Numeric(30, 12), server_default='0', nullable=False),
        sa.Column('users_credited', sa.Integer(), server_default='0', nullable=False),
        money('total_distributed', server_default='0', nullable=False),
        sa.Column('is_settled', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('settled_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_daily_revenue_pools_date', 'daily_revenue_pools', ['date'], unique=True)

    op.create_table(
        'point_distributions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'pool_id', sa.Integer(),
            sa.ForeignKey('daily_revenue_pools.id', ondelete='CASCADE'), nullable=False,
        ),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('points_redeemed', sa.Numeric(18, 4), nullable=False),
        money('amount_credited', nullable=False),
        sa.Column('status', sa.String(10), server_default='credited', nullable=False),
        sa.Column('credited_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'pool_id', name='unique_user_pool_distribution'),
    )
    op.create_index('ix_distribution_date_amount', 'point_distributions', ['date', 'amount_credited'])
    op.create_index('ix_distribution_user_date', 'point_distributions', ['user_id', 'date'])

    op.create_table(
        'user_balances',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        money('available_balance', server_default='0', nullable=False),
        money('pending_balance', server_default='0', nullable=False),
        sa.Column('pending_stale', sa.Boolean(), server_default='true', nullable=False),
        money('gift_balance', server_default='0', nullable=False),
        money('lifetime_earnings', server_default='0', nullable=False),
        money('total_withdrawn', server_default='0', nullable=False),
        sa.Column('last_withdrawal_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('available_balance >= 0', name='ck_available_balance_non_negative'),
    )
    op.create_index('ix_user_balances_user_id', 'user_balances', ['user_id'], unique=True)

    op.create_table(
        'balance_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('account', sa.String(10), server_default='available', nullable=False),
        money('amount', nullable=False),
        money('balance_after', nullable=False),
        sa.Column('action_type', sa.String(30), nullable=False),
        sa.Column('ref_type', sa.String(20), server_default='none', nullable=False),
        sa.Column('ref_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(200), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_balance_entries_user_id', 'balance_entries', ['user_id'])
    op.create_index('ix_balance_entry_user_created', 'balance_entries', ['user_id', 'created_at'])

    op.create_table(
        'withdrawal_requests',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        money('amount', nullable=False),
        sa.Column('method', sa.String(20), nullable=False),
        money('fee', nullable=False),
        money('net_amount', nullable=False),
        sa.Column('paypal_email', sa.String(255), nullable=True),
        sa.Column('phone_number', sa.String(20), nullable=True),
        sa.Column('bank_details', sa.JSON(), nullable=True),
        sa.Column('western_union_details', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(12), server_default='pending', nullable=False),
        sa.Column('transaction_id', sa.String(64), nullable=True),
        sa.Column('rejection_reason', sa.String(300), nullable=True),
        sa.Column('requested_at', sa.DateTime(), nullable=False),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_withdrawal_user_requested', 'withdrawal_requests', ['user_id', 'requested_at'])
    op.create_index('ix_withdrawal_status', 'withdrawal_requests', ['status'])

    op.create_table(
        'gifts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('sender_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('receiver_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('gift_type', sa.String(20), nullable=False),
        money('value', nullable=False),
        money('creator_amount', nullable=False),
        sa.Column('is_free', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_gift_receiver_created', 'gifts', ['receiver_id', 'created_at'])
    op.create_index('ix_gift_sender_created', 'gifts', ['sender_id', 'created_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('message', sa.String(500), nullable=False),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])


def downgrade() -> None:
    op.drop_table('notifications')
    op.drop_table('gifts')
    op.drop_table('withdrawal_requests')
    op.drop_table('balance_entries')
    op.drop_table('user_balances')
    op.drop_table('point_distributions')
    op.drop_table('daily_revenue_pools')
    op.drop_table('ad_impressions')
    op.drop_table('activity_logs')
    op.drop_table('points_days')
    op.drop_table('users')
