"""Create entitlement and access-control tables

Revision ID: 0001_entitlement_tables
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_entitlement_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create private state, access control, photo and webhook tables."""

    op.create_table(
        'user_private_data',
        sa.Column('user_id', sa.String(128), primary_key=True),

        # Stripe IDs
        sa.Column('stripe_customer_id', sa.String(255)),
        sa.Column('stripe_subscription_id', sa.String(255)),

        # Subscription
        sa.Column('subscription_tier', sa.String(20), server_default='free', nullable=False),
        sa.Column('subscription_status', sa.String(20), server_default='active', nullable=False),
        sa.Column('billing_interval', sa.String(20)),
        sa.Column('current_period_start', sa.DateTime(timezone=True)),
        sa.Column('current_period_end', sa.DateTime(timezone=True)),
        sa.Column('cancel_at_period_end', sa.Boolean, server_default='false', nullable=False),
        sa.Column('cancel_at', sa.DateTime(timezone=True)),
        sa.Column('pending_downgrade_tier', sa.String(20)),
        sa.Column('pending_downgrade_date', sa.DateTime(timezone=True)),

        # Reputation
        sa.Column('reputation_tier', sa.String(20)),
        sa.Column('reputation_score', sa.Integer, server_default='0', nullable=False),
        sa.Column('reputation_calculated_at', sa.DateTime(timezone=True)),
        sa.Column('daily_higher_tier_conversation_limit', sa.Integer),
        sa.Column('higher_tier_conversations_today', sa.Integer, server_default='0', nullable=False),
        sa.Column('counters_as_of', sa.String(10)),

        # Trust signals
        sa.Column('profile_completion', sa.Float, server_default='0', nullable=False),
        sa.Column('identity_verified', sa.Boolean, server_default='false', nullable=False),
        sa.Column('account_created_at', sa.DateTime(timezone=True)),
        sa.Column('message_metrics', sa.JSON, server_default='{}', nullable=False),
        sa.Column('blocks_received', sa.Integer, server_default='0', nullable=False),
        sa.Column('reports_received', sa.Integer, server_default='0', nullable=False),
        sa.Column('burst_score', sa.Float, server_default='0', nullable=False),

        *_timestamps(),
    )
    op.create_index(
        'ix_user_private_data_stripe_customer_id', 'user_private_data',
        ['stripe_customer_id'], unique=True,
    )
    op.create_index(
        'ix_user_private_data_stripe_subscription_id', 'user_private_data',
        ['stripe_subscription_id'], unique=True,
    )
    # Used by the daily counter reset job
    op.create_index('ix_user_private_data_counters_as_of', 'user_private_data', ['counters_as_of'])

    op.create_table(
        'private_access_requests',
        sa.Column('owner_id', sa.String(128), primary_key=True),
        sa.Column('requester_id', sa.String(128), primary_key=True),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('responded_at', sa.DateTime(timezone=True)),
        sa.Column('requester_name', sa.String(100)),
        sa.Column('requester_photo', sa.String(1024)),
    )
    op.create_index('ix_private_access_requests_requester_id', 'private_access_requests', ['requester_id'])
    op.create_index('ix_private_access_requests_status', 'private_access_requests', ['status'])

    op.create_table(
        'private_access_grants',
        sa.Column('owner_id', sa.String(128), primary_key=True),
        sa.Column('grantee_id', sa.String(128), primary_key=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'private_access_received',
        sa.Column('grantee_id', sa.String(128), primary_key=True),
        sa.Column('owner_id', sa.String(128), primary_key=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'user_profiles',
        sa.Column('user_id', sa.String(128), primary_key=True),
        sa.Column('display_name', sa.String(100)),
        sa.Column('photo_url', sa.String(1024)),
        *_timestamps(),
    )

    op.create_table(
        'photos',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('owner_id', sa.String(128), nullable=False),
        sa.Column('url', sa.String(1024), nullable=False),
        sa.Column('is_private', sa.Boolean, server_default='false', nullable=False),
        sa.Column('sort_order', sa.Integer, server_default='0', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('owner_id', 'url', name='uq_photos_owner_url'),
    )
    op.create_index('ix_photos_owner_id', 'photos', ['owner_id'])

    op.create_table(
        'processed_webhook_events',
        sa.Column('event_id', sa.String(255), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column(
            'processed_at',
            sa.DateTime(timezone=True),
            server_default=sa.text('now()'),
            nullable=False,
        ),
    )
    # Index for cleanup queries (delete events older than X days)
    op.create_index(
        'ix_processed_webhook_events_processed_at',
        'processed_webhook_events',
        ['processed_at'],
    )


def downgrade() -> None:
    op.drop_index('ix_processed_webhook_events_processed_at')
    op.drop_table('processed_webhook_events')
    op.drop_index('ix_photos_owner_id')
    op.drop_table('photos')
    op.drop_table('user_profiles')
    op.drop_table('private_access_received')
    op.drop_table('private_access_grants')
    op.drop_index('ix_private_access_requests_status')
    op.drop_index('ix_private_access_requests_requester_id')
    op.drop_table('private_access_requests')
    op.drop_index('ix_user_private_data_counters_as_of')
    op.drop_index('ix_user_private_data_stripe_subscription_id')
    op.drop_index('ix_user_private_data_stripe_customer_id')
    op.drop_table('user_private_data')
