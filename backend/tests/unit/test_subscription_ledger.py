"""
Unit tests for subscription state and plan change classification.
"""

from datetime import datetime, timezone

import pytest

from gylde.domain.subscription import (
    BillingInterval,
    ChangeAction,
    Subscription,
    SubscriptionStatus,
    SubscriptionStatusResponse,
    SubscriptionTier,
    classify_change,
    effective_tier,
    is_premium,
)


PERIOD_END = datetime(2026, 11, 19, tzinfo=timezone.utc)


def _subscription(tier=SubscriptionTier.PLUS, interval=BillingInterval.MONTHLY,
                  status=SubscriptionStatus.ACTIVE, **kwargs) -> Subscription:
    return Subscription(
        user_id="user-1",
        tier=tier,
        billing_interval=interval,
        status=status,
        current_period_end=PERIOD_END,
        **kwargs,
    )


# ============================================================================
# Classification
# ============================================================================

class TestClassifyChange:
    """Current plan is plus/monthly unless stated otherwise."""

    def test_same_plan_is_no_op(self):
        plan = classify_change(_subscription(), SubscriptionTier.PLUS, BillingInterval.MONTHLY)
        assert plan.action is ChangeAction.NO_OP
        assert plan.via_portal is False

    def test_higher_tier_is_upgrade(self):
        plan = classify_change(_subscription(), SubscriptionTier.ELITE, BillingInterval.MONTHLY)
        assert plan.action is ChangeAction.UPGRADE
        assert plan.takes_effect_immediately is True

    def test_same_tier_other_interval_is_interval_change(self):
        plan = classify_change(_subscription(), SubscriptionTier.PLUS, BillingInterval.QUARTERLY)
        assert plan.action is ChangeAction.INTERVAL_CHANGE
        assert plan.to_interval is BillingInterval.QUARTERLY

    def test_free_target_goes_to_portal(self):
        plan = classify_change(_subscription(), SubscriptionTier.FREE)
        assert plan.action is ChangeAction.DOWNGRADE
        assert plan.via_portal is True

    def test_lower_paid_tier_is_scheduled_downgrade(self):
        current = _subscription(tier=SubscriptionTier.ELITE)
        plan = classify_change(current, SubscriptionTier.PLUS, BillingInterval.MONTHLY)
        assert plan.action is ChangeAction.DOWNGRADE
        assert plan.via_portal is False
        assert plan.takes_effect_immediately is False

    def test_no_subscription_and_paid_target_is_new(self):
        plan = classify_change(None, SubscriptionTier.PLUS, BillingInterval.QUARTERLY)
        assert plan.action is ChangeAction.NEW
        assert plan.from_tier is SubscriptionTier.FREE

    def test_free_to_free_is_no_op(self):
        plan = classify_change(Subscription(user_id="user-1"), SubscriptionTier.FREE)
        assert plan.action is ChangeAction.NO_OP

    def test_canceled_paid_row_counts_as_no_subscription(self):
        current = _subscription(status=SubscriptionStatus.CANCELED)
        plan = classify_change(current, SubscriptionTier.PLUS, BillingInterval.MONTHLY)
        assert plan.action is ChangeAction.NEW

    def test_past_due_plan_is_still_changed_in_place(self):
        current = _subscription(status=SubscriptionStatus.PAST_DUE)
        plan = classify_change(current, SubscriptionTier.ELITE, BillingInterval.MONTHLY)
        assert plan.action is ChangeAction.UPGRADE

    def test_interval_defaults_to_monthly(self):
        plan = classify_change(_subscription(), SubscriptionTier.PLUS)
        assert plan.action is ChangeAction.NO_OP
        assert plan.to_interval is BillingInterval.MONTHLY

    @pytest.mark.parametrize("target_tier", list(SubscriptionTier))
    @pytest.mark.parametrize("target_interval", [None, *BillingInterval])
    @pytest.mark.parametrize("current_tier", list(SubscriptionTier))
    def test_every_input_classifies(self, current_tier, target_tier, target_interval):
        current = _subscription(tier=current_tier)
        plan = classify_change(current, target_tier, target_interval)
        assert plan.action in ChangeAction
        assert plan.via_portal == (plan.action is ChangeAction.DOWNGRADE and not target_tier.is_paid)


# ============================================================================
# Premium status
# ============================================================================

class TestPremium:

    @pytest.mark.parametrize("status,expected", [
        (SubscriptionStatus.ACTIVE, True),
        (SubscriptionStatus.TRIALING, True),
        (SubscriptionStatus.PAST_DUE, False),
        (SubscriptionStatus.CANCELED, False),
    ])
    def test_premium_requires_active_or_trialing(self, status, expected):
        assert is_premium(_subscription(status=status)) is expected

    def test_free_tier_is_never_premium(self):
        assert is_premium(Subscription(user_id="user-1")) is False
        assert is_premium(None) is False

    def test_effective_tier_drops_to_free_when_not_premium(self):
        assert effective_tier(_subscription(tier=SubscriptionTier.ELITE)) is SubscriptionTier.ELITE
        assert effective_tier(
            _subscription(tier=SubscriptionTier.ELITE, status=SubscriptionStatus.PAST_DUE)
        ) is SubscriptionTier.FREE

    @pytest.mark.parametrize("provider_status,expected", [
        ("active", SubscriptionStatus.ACTIVE),
        ("trialing", SubscriptionStatus.TRIALING),
        ("past_due", SubscriptionStatus.PAST_DUE),
        ("incomplete", SubscriptionStatus.CANCELED),
        ("unpaid", SubscriptionStatus.CANCELED),
        (None, SubscriptionStatus.CANCELED),
    ])
    def test_provider_status_mapping(self, provider_status, expected):
        assert SubscriptionStatus.from_provider(provider_status) is expected


# ============================================================================
# Pending downgrade
# ============================================================================

class TestPendingDowngrade:

    def test_pending_downgrade_reported(self):
        sub = _subscription(
            tier=SubscriptionTier.ELITE,
            pending_downgrade_tier=SubscriptionTier.PLUS,
            pending_downgrade_date=PERIOD_END,
        )
        response = SubscriptionStatusResponse.from_subscription(sub)
        assert response.pending_downgrade_tier is SubscriptionTier.PLUS
        assert response.pending_downgrade_date == PERIOD_END

    def test_cancellation_hides_pending_downgrade(self):
        sub = _subscription(
            tier=SubscriptionTier.ELITE,
            cancel_at_period_end=True,
            pending_downgrade_tier=SubscriptionTier.PLUS,
            pending_downgrade_date=PERIOD_END,
        )
        assert sub.effective_pending_downgrade is None
        response = SubscriptionStatusResponse.from_subscription(sub)
        assert response.pending_downgrade_tier is None
        assert response.pending_downgrade_date is None
        dumped = response.model_dump(by_alias=True)
        assert dumped["cancelAtPeriodEnd"] is True
        assert dumped["isPremium"] is True
