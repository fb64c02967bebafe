"""
Unit tests for capability resolution and the entitlement gate.
"""

from unittest.mock import MagicMock

import pytest

from gylde.domain.entitlements import (
    FEATURE_TABLE,
    EntitlementGate,
    Feature,
    capabilities,
    revalidate,
)
from gylde.domain.reputation import ReputationRecord, ReputationTier, UNLIMITED
from gylde.domain.subscription import (
    BillingInterval,
    Subscription,
    SubscriptionStatus,
    SubscriptionTier,
)


TODAY = "2026-10-19"


def _paid(tier=SubscriptionTier.PLUS, status=SubscriptionStatus.ACTIVE) -> Subscription:
    return Subscription(
        user_id="user-1",
        tier=tier,
        status=status,
        billing_interval=BillingInterval.MONTHLY,
    )


class TestCapabilities:

    def test_day_must_be_supplied(self):
        with pytest.raises(TypeError):
            capabilities(None, None)

    def test_stale_counter_reads_as_unused_on_a_new_day(self):
        record = ReputationRecord(
            tier=ReputationTier.NEW, higher_tier_conversations_today=1, counters_as_of="2026-10-18",
        )
        assert capabilities(None, record, today="2026-10-18").can_message_cross_tier is False
        assert capabilities(None, record, today=TODAY).can_message_cross_tier is True

    def test_free_user_without_records(self):
        caps = capabilities(None, None, today=TODAY)
        assert caps.subscription_tier is SubscriptionTier.FREE
        assert caps.reputation_tier is ReputationTier.NEW
        assert caps.is_premium is False
        assert caps.max_photos == 3
        assert caps.can_message_cross_tier is True
        assert not any(caps.features.values())

    def test_free_user_photo_cap_follows_reputation(self):
        record = ReputationRecord(tier=ReputationTier.TRUSTED)
        caps = capabilities(None, record, today=TODAY)
        assert caps.max_photos == 12

    def test_premium_photo_cap_comes_from_remote_config(self):
        record = ReputationRecord(tier=ReputationTier.NEW)
        caps = capabilities(_paid(), record, remote_max_photos_for_premium=30, today=TODAY)
        assert caps.max_photos == 30
        assert caps.higher_tier_budget.daily_limit == UNLIMITED

    def test_plus_features(self):
        caps = capabilities(_paid(), None, today=TODAY)
        assert caps.allows(Feature.CAN_ACCESS_PRIVATE_PHOTOS)
        assert caps.allows(Feature.READ_RECEIPTS)
        assert not caps.allows(Feature.HAS_AI_ASSISTANT)
        assert not caps.allows(Feature.PRIORITY_VISIBILITY)

    def test_elite_has_every_feature(self):
        caps = capabilities(_paid(SubscriptionTier.ELITE), None, today=TODAY)
        assert all(caps.features.values())
        assert set(caps.features) == set(Feature)

    def test_past_due_subscription_loses_features(self):
        caps = capabilities(_paid(status=SubscriptionStatus.PAST_DUE), None, today=TODAY)
        assert caps.subscription_tier is SubscriptionTier.FREE
        assert not caps.allows(Feature.UNLIMITED_MESSAGING)

    def test_exhausted_budget_blocks_cross_tier_messaging(self):
        record = ReputationRecord(
            tier=ReputationTier.NEW,
            higher_tier_conversations_today=1,
            counters_as_of=TODAY,
        )
        caps = capabilities(None, record, today=TODAY)
        assert caps.higher_tier_budget.remaining == 0
        assert caps.can_message_cross_tier is False

    def test_unlimited_budget_allows_cross_tier_messaging(self):
        record = ReputationRecord(tier=ReputationTier.DISTINGUISHED)
        caps = capabilities(None, record, today=TODAY)
        assert caps.higher_tier_budget.remaining == UNLIMITED
        assert caps.can_message_cross_tier is True

    def test_resolution_is_deterministic(self):
        record = ReputationRecord(tier=ReputationTier.ACTIVE, counters_as_of=TODAY)
        assert capabilities(_paid(), record, today=TODAY) == capabilities(_paid(), record, today=TODAY)

    def test_feature_table_is_exhaustive(self):
        assert set(FEATURE_TABLE) == set(SubscriptionTier)
        assert FEATURE_TABLE[SubscriptionTier.PLUS] < FEATURE_TABLE[SubscriptionTier.ELITE]

    def test_serializes_camel_case(self):
        dumped = capabilities(None, None, today=TODAY).model_dump(by_alias=True, mode="json")
        assert dumped["subscriptionTier"] == "free"
        assert dumped["canMessageCrossTier"] is True
        assert dumped["higherTierBudget"]["dailyLimit"] == 1
        assert dumped["features"]["can_access_private_photos"] is False


class TestRevalidate:

    def test_matching_sets(self):
        caps = capabilities(_paid(), None, today=TODAY)
        assert revalidate(caps, caps) == []

    def test_inflated_client_claim_is_detected(self):
        claimed = capabilities(_paid(SubscriptionTier.ELITE), None, today=TODAY)
        actual = capabilities(None, None, today=TODAY)
        diff = revalidate(claimed, actual)
        assert "features" in diff
        assert "is_premium" in diff
        assert "subscription_tier" in diff


class TestEntitlementGate:

    def test_allowed_check_does_not_prompt(self):
        on_denied = MagicMock()
        gate = EntitlementGate(capabilities(_paid(), None, today=TODAY), on_denied)
        assert gate.check(Feature.ADVANCED_FILTERS) is True
        on_denied.assert_not_called()

    def test_denied_check_prompts_once(self):
        on_denied = MagicMock()
        gate = EntitlementGate(capabilities(None, None, today=TODAY), on_denied)
        assert gate.check(Feature.ADVANCED_FILTERS) is False
        on_denied.assert_called_once_with(Feature.ADVANCED_FILTERS)

    def test_silent_check(self):
        on_denied = MagicMock()
        gate = EntitlementGate(capabilities(None, None, today=TODAY), on_denied)
        assert gate.check(Feature.HAS_VIRTUAL_PHONE, prompt_on_denial=False) is False
        on_denied.assert_not_called()

    def test_prompt_does_not_change_answer(self):
        caps = capabilities(None, None, today=TODAY)
        gate = EntitlementGate(caps, on_denied=lambda feature: None)
        assert gate.check(Feature.READ_RECEIPTS) == caps.allows(Feature.READ_RECEIPTS)
        assert gate.capabilities is caps

    def test_gate_without_hook(self):
        gate = EntitlementGate(capabilities(None, None, today=TODAY))
        assert gate.check(Feature.READ_RECEIPTS) is False


@pytest.mark.parametrize("tier", list(SubscriptionTier))
def test_features_match_table(tier):
    subscription = None if tier is SubscriptionTier.FREE else _paid(tier)
    caps = capabilities(subscription, None, today=TODAY)
    granted = {feature for feature, allowed in caps.features.items() if allowed}
    assert granted == set(FEATURE_TABLE[tier])
