"""
UserPrivateData SQLModel for Gylde

One row per user holding subscription, reputation and trust state.
Written only by the backend (webhooks, checkout/portal, reputation jobs);
clients see derived summaries.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, JSON
from sqlmodel import Field

from gylde.infrastructure.db.models.base import TimestampMixin


class UserPrivateData(TimestampMixin, table=True):
    """
    Private per-user state table.
    """

    __tablename__ = "user_private_data"

    user_id: str = Field(primary_key=True, max_length=128)

    # Stripe IDs
    stripe_customer_id: Optional[str] = Field(default=None, unique=True, index=True, max_length=255)
    stripe_subscription_id: Optional[str] = Field(default=None, unique=True, index=True, max_length=255)

    # Subscription
    subscription_tier: str = Field(default="free", max_length=20)
    subscription_status: str = Field(default="active", max_length=20)
    billing_interval: Optional[str] = Field(default=None, max_length=20)
    current_period_start: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    current_period_end: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    cancel_at_period_end: bool = Field(default=False)
    cancel_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    pending_downgrade_tier: Optional[str] = Field(default=None, max_length=20)
    pending_downgrade_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Reputation
    reputation_tier: Optional[str] = Field(default=None, max_length=20)
    reputation_score: int = Field(default=0)
    reputation_calculated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    daily_higher_tier_conversation_limit: Optional[int] = Field(default=None)
    higher_tier_conversations_today: int = Field(default=0)
    counters_as_of: Optional[str] = Field(default=None, max_length=10, index=True)

    # Trust signals
    profile_completion: float = Field(default=0)
    identity_verified: bool = Field(default=False)
    account_created_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    message_metrics: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False, default=dict))
    blocks_received: int = Field(default=0)
    reports_received: int = Field(default=0)
    burst_score: float = Field(default=0)
