"""
Private Data Repository

Data access for the per-user private state row and its mapping to the
Subscription and ReputationRecord domain models.
"""

import logging
from enum import Enum
from typing import List, Optional, Type, TypeVar

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gylde.domain.reputation import MessageMetrics, ReputationRecord, ReputationTier
from gylde.domain.subscription import (
    BillingInterval,
    Subscription,
    SubscriptionStatus,
    SubscriptionTier,
)
from gylde.infrastructure.db.models import UserPrivateData
from gylde.infrastructure.db.repositories.base_repository import BaseRepository
from gylde.utils.datetime import utc_now


logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


class PrivateDataRepository(BaseRepository[UserPrivateData]):
    """
    Repository for the user_private_data table.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(UserPrivateData, session)

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get(self, user_id: str, for_update: bool = False) -> Optional[UserPrivateData]:
        return await self.get_by_id(user_id, for_update=for_update)

    async def get_or_create(self, user_id: str, for_update: bool = False) -> UserPrivateData:
        """
        Get the user's private row, creating a free-tier default if missing.

        Args:
            user_id: Authenticated user ID
            for_update: Lock the row until the transaction ends

        Returns:
            UserPrivateData row
        """
        row = await self.get(user_id, for_update=for_update)
        if row is not None:
            return row

        row = UserPrivateData(user_id=user_id, account_created_at=utc_now())
        await self.add(row)
        logger.info(f"Created private data row for user {user_id}")
        return row

    async def get_by_stripe_customer_id(self, customer_id: str) -> Optional[UserPrivateData]:
        rows = await self.list_where(UserPrivateData.stripe_customer_id == customer_id, limit=1)
        return rows[0] if rows else None

    async def get_by_stripe_subscription_id(self, subscription_id: str) -> Optional[UserPrivateData]:
        rows = await self.list_where(UserPrivateData.stripe_subscription_id == subscription_id, limit=1)
        return rows[0] if rows else None

    async def list_user_ids(self, after: Optional[str] = None, limit: int = 50) -> List[str]:
        """User ids in key order, starting after ``after`` (keyset pagination)."""
        stmt = select(UserPrivateData.user_id).order_by(UserPrivateData.user_id).limit(limit)
        if after is not None:
            stmt = stmt.where(UserPrivateData.user_id > after)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def reset_stale_counters(self, today: str) -> int:
        """
        Zero every higher-tier counter not stamped with ``today``.

        Rows already stamped today are untouched, so re-running on the same
        day resets nothing.

        Args:
            today: UTC ISO date

        Returns:
            Number of rows reset
        """
        stmt = (
            update(UserPrivateData)
            .where(or_(
                UserPrivateData.counters_as_of.is_(None),
                UserPrivateData.counters_as_of != today,
            ))
            .values(higher_tier_conversations_today=0, counters_as_of=today)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    @staticmethod
    def to_subscription(row: UserPrivateData) -> Subscription:
        """Convert database row to the Subscription domain entity."""
        return Subscription(
            user_id=row.user_id,
            stripe_customer_id=row.stripe_customer_id,
            stripe_subscription_id=row.stripe_subscription_id,
            tier=_stored(SubscriptionTier, row.subscription_tier, SubscriptionTier.FREE),
            status=SubscriptionStatus.from_provider(row.subscription_status),
            billing_interval=_stored(BillingInterval, row.billing_interval),
            current_period_start=row.current_period_start,
            current_period_end=row.current_period_end,
            cancel_at_period_end=row.cancel_at_period_end or False,
            cancel_at=row.cancel_at,
            pending_downgrade_tier=_stored(SubscriptionTier, row.pending_downgrade_tier),
            pending_downgrade_date=row.pending_downgrade_date,
        )

    @staticmethod
    def apply_subscription(row: UserPrivateData, subscription: Subscription) -> None:
        """Copy the Subscription entity onto the database row."""
        row.stripe_customer_id = subscription.stripe_customer_id
        row.stripe_subscription_id = subscription.stripe_subscription_id
        row.subscription_tier = subscription.tier.value
        row.subscription_status = subscription.status.value
        row.billing_interval = subscription.billing_interval.value if subscription.billing_interval else None
        row.current_period_start = subscription.current_period_start
        row.current_period_end = subscription.current_period_end
        row.cancel_at_period_end = subscription.cancel_at_period_end
        row.cancel_at = subscription.cancel_at
        row.pending_downgrade_tier = (
            subscription.pending_downgrade_tier.value if subscription.pending_downgrade_tier else None
        )
        row.pending_downgrade_date = subscription.pending_downgrade_date

    @staticmethod
    def to_reputation(row: Optional[UserPrivateData]) -> Optional[ReputationRecord]:
        """Convert database row to the ReputationRecord domain model."""
        if row is None:
            return None
        return ReputationRecord(
            tier=_stored(ReputationTier, row.reputation_tier),
            daily_higher_tier_conversation_limit=row.daily_higher_tier_conversation_limit,
            higher_tier_conversations_today=row.higher_tier_conversations_today or 0,
            counters_as_of=row.counters_as_of,
        )

    @staticmethod
    def to_message_metrics(row: UserPrivateData) -> MessageMetrics:
        return MessageMetrics.model_validate(row.message_metrics or {})


def _stored(enum_cls: Type[E], value: Optional[str], default: Optional[E] = None) -> Optional[E]:
    """Enum member for a stored string; unknown values map to ``default``."""
    if not value:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"Unknown {enum_cls.__name__} value {value!r} in storage")
        return default
