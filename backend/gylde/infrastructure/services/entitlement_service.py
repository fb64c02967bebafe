"""
Entitlement Service

Server-side enforcement point for capabilities. Loads the caller's
subscription and reputation state and runs the pure resolver over it.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from gylde.config.settings import Settings, get_settings
from gylde.domain.entitlements import CapabilitySet, Feature, capabilities
from gylde.domain.reputation import TIER_CONFIG
from gylde.infrastructure.db.repositories import PrivateDataRepository
from gylde.infrastructure.exceptions import PermissionDeniedError
from gylde.infrastructure.realtime.change_feed import (
    ChangeFeed,
    entitlements_topic,
    get_change_feed,
)
from gylde.utils.datetime import utc_today


logger = logging.getLogger(__name__)


class EntitlementService:
    """
    Resolves and enforces capability sets.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[Settings] = None,
        feed: Optional[ChangeFeed] = None,
    ):
        self._private_repo = PrivateDataRepository(session)
        self._settings = settings or get_settings()
        self._feed = feed or get_change_feed()

    async def resolve(self, user_id: str, today: Optional[str] = None) -> CapabilitySet:
        """
        Compute the caller's current capability set.

        Args:
            user_id: User whose capabilities to resolve
            today: UTC ISO date override for counter rollover

        Returns:
            CapabilitySet
        """
        row = await self._private_repo.get(user_id)
        subscription = PrivateDataRepository.to_subscription(row) if row else None
        reputation = PrivateDataRepository.to_reputation(row)

        return capabilities(
            subscription,
            reputation,
            tier_config=TIER_CONFIG,
            remote_max_photos_for_premium=self._settings.premium_max_photos,
            today=today or utc_today(),
        )

    async def require_feature(self, user_id: str, feature: Feature) -> CapabilitySet:
        """
        Resolve capabilities and reject the call if a feature is not included.

        Raises:
            PermissionDeniedError: when the subscription tier lacks the feature
        """
        caps = await self.resolve(user_id)
        if not caps.allows(feature):
            logger.info(f"User {user_id} denied feature {feature.value}")
            raise PermissionDeniedError(
                "This feature requires a higher subscription tier",
                feature=feature.value,
            )
        return caps

    async def publish(self, user_id: str) -> None:
        """Push the user's fresh capability set to any live session."""
        topic = entitlements_topic(user_id)
        if not self._feed.has_subscribers(topic):
            return
        await self._feed.publish(topic, await self.resolve(user_id))
