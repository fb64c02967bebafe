"""
Tests for server-side entitlement enforcement.
"""

import pytest

from gylde.config.settings import Settings
from gylde.domain.entitlements import Feature
from gylde.domain.subscription import SubscriptionTier
from gylde.infrastructure.db.models import UserPrivateData
from gylde.infrastructure.exceptions import PermissionDeniedError
from gylde.infrastructure.services.entitlement_service import EntitlementService


USER = "member-0001"
TODAY = "2026-10-19"


@pytest.fixture
def service(session, feed):
    return EntitlementService(session, settings=Settings(_env_file=None), feed=feed)


async def _subscribe(session, tier: str, status: str = "active"):
    session.add(UserPrivateData(user_id=USER, subscription_tier=tier, subscription_status=status))
    await session.commit()


class TestRequireFeature:

    @pytest.mark.asyncio
    async def test_free_member_is_denied(self, service):
        with pytest.raises(PermissionDeniedError) as exc_info:
            await service.require_feature(USER, Feature.HAS_VIRTUAL_PHONE)

        assert exc_info.value.status_code == 403
        assert exc_info.value.details == {"feature": "has_virtual_phone"}

    @pytest.mark.asyncio
    async def test_plus_member_lacks_elite_feature(self, session, service):
        await _subscribe(session, "plus")

        with pytest.raises(PermissionDeniedError):
            await service.require_feature(USER, Feature.HAS_AI_ASSISTANT)

    @pytest.mark.asyncio
    async def test_elite_member_is_allowed(self, session, service):
        await _subscribe(session, "elite")

        caps = await service.require_feature(USER, Feature.HAS_AI_ASSISTANT)

        assert caps.subscription_tier is SubscriptionTier.ELITE
        assert caps.allows(Feature.HAS_AI_ASSISTANT)

    @pytest.mark.asyncio
    async def test_past_due_member_loses_feature(self, session, service):
        await _subscribe(session, "elite", status="past_due")

        with pytest.raises(PermissionDeniedError):
            await service.require_feature(USER, Feature.READ_RECEIPTS)


class TestResolve:

    @pytest.mark.asyncio
    async def test_explicit_day_controls_counter_rollover(self, session, service):
        session.add(UserPrivateData(
            user_id=USER,
            reputation_tier="new",
            higher_tier_conversations_today=1,
            counters_as_of="2026-10-18",
        ))
        await session.commit()

        assert (await service.resolve(USER, today="2026-10-18")).higher_tier_budget.remaining == 0
        assert (await service.resolve(USER, today=TODAY)).higher_tier_budget.remaining == 1

    @pytest.mark.asyncio
    async def test_unknown_stored_reputation_tier_is_lowest(self, session, service):
        session.add(UserPrivateData(user_id=USER, reputation_tier="legendary"))
        await session.commit()

        caps = await service.resolve(USER, today=TODAY)

        assert caps.reputation_tier.value == "new"
        assert caps.max_photos == 3
