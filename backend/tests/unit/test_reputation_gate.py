"""
Unit tests for reputation tiers and the higher-tier conversation budget.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gylde.domain.reputation import (
    LOWEST_TIER,
    TIER_CONFIG,
    UNLIMITED,
    MessageMetrics,
    ReputationRecord,
    ReputationSignals,
    ReputationTier,
    TierConfig,
    calculate_score,
    compare_tiers,
    derive_signals,
    higher_tier_budget,
    is_higher_tier,
    resolve_tier,
    score_to_tier,
)


TODAY = "2026-10-19"
YESTERDAY = "2026-10-18"


# ============================================================================
# Tier Resolution
# ============================================================================

class TestResolveTier:

    def test_missing_record_is_lowest_tier(self):
        assert resolve_tier(None) is ReputationTier.NEW
        assert LOWEST_TIER is ReputationTier.NEW

    def test_record_without_tier_is_lowest_tier(self):
        assert resolve_tier(ReputationRecord()) is ReputationTier.NEW

    def test_record_tier_is_used(self):
        record = ReputationRecord(tier=ReputationTier.TRUSTED)
        assert resolve_tier(record) is ReputationTier.TRUSTED

    def test_tier_order(self):
        assert compare_tiers(ReputationTier.DISTINGUISHED, ReputationTier.NEW) > 0
        assert compare_tiers(ReputationTier.ACTIVE, ReputationTier.ACTIVE) == 0
        assert is_higher_tier(ReputationTier.ACTIVE, ReputationTier.TRUSTED)
        assert not is_higher_tier(ReputationTier.TRUSTED, ReputationTier.ACTIVE)
        assert not is_higher_tier(ReputationTier.ACTIVE, ReputationTier.ACTIVE)

    def test_tier_config_covers_every_tier(self):
        assert set(TIER_CONFIG) == set(ReputationTier)
        assert TIER_CONFIG[ReputationTier.NEW].daily_higher_tier_conversations == 1
        assert TIER_CONFIG[ReputationTier.NEW].max_photos == 3
        assert TIER_CONFIG[ReputationTier.DISTINGUISHED].daily_higher_tier_conversations == UNLIMITED
        assert TIER_CONFIG[ReputationTier.DISTINGUISHED].max_photos == 15


# ============================================================================
# Higher-tier Budget
# ============================================================================

class TestHigherTierBudget:

    def test_missing_record_gets_conservative_finite_budget(self):
        budget = higher_tier_budget(None, TIER_CONFIG, False, TODAY)
        assert budget.daily_limit == 1
        assert budget.used_today == 0
        assert budget.remaining == 1
        assert budget.is_unlimited is False

    @pytest.mark.parametrize("used,expected_remaining", [(0, 3), (2, 1), (3, 0), (7, 0)])
    def test_remaining_is_never_negative(self, used, expected_remaining):
        record = ReputationRecord(
            tier=ReputationTier.ACTIVE,
            higher_tier_conversations_today=used,
            counters_as_of=TODAY,
        )
        budget = higher_tier_budget(record, TIER_CONFIG, False, TODAY)
        assert budget.remaining == expected_remaining
        assert budget.used_today == used

    def test_unlimited_limit(self):
        record = ReputationRecord(
            tier=ReputationTier.DISTINGUISHED,
            higher_tier_conversations_today=40,
            counters_as_of=TODAY,
        )
        budget = higher_tier_budget(record, TIER_CONFIG, False, TODAY)
        assert budget.daily_limit == UNLIMITED
        assert budget.remaining == UNLIMITED
        assert budget.is_unlimited is True

    def test_override_replaces_tier_limit(self):
        record = ReputationRecord(
            tier=ReputationTier.NEW,
            daily_higher_tier_conversation_limit=6,
            higher_tier_conversations_today=2,
            counters_as_of=TODAY,
        )
        budget = higher_tier_budget(record, TIER_CONFIG, False, TODAY)
        assert budget.daily_limit == 6
        assert budget.remaining == 4

    def test_unlimited_override(self):
        record = ReputationRecord(tier=ReputationTier.NEW, daily_higher_tier_conversation_limit=UNLIMITED)
        budget = higher_tier_budget(record, TIER_CONFIG, False, TODAY)
        assert budget.is_unlimited is True
        assert budget.remaining == UNLIMITED

    @pytest.mark.parametrize("tier", list(ReputationTier))
    def test_premium_is_unlimited_regardless_of_tier_and_counter(self, tier):
        record = ReputationRecord(
            tier=tier,
            daily_higher_tier_conversation_limit=0,
            higher_tier_conversations_today=99,
            counters_as_of=TODAY,
        )
        budget = higher_tier_budget(record, TIER_CONFIG, True, TODAY)
        assert budget.model_dump() == {
            "daily_limit": UNLIMITED,
            "used_today": 0,
            "remaining": UNLIMITED,
            "is_unlimited": True,
        }

    def test_counter_from_previous_day_reads_as_zero(self):
        record = ReputationRecord(
            tier=ReputationTier.ACTIVE,
            higher_tier_conversations_today=3,
            counters_as_of=YESTERDAY,
        )
        before_midnight = higher_tier_budget(record, TIER_CONFIG, False, YESTERDAY)
        after_midnight = higher_tier_budget(record, TIER_CONFIG, False, TODAY)
        assert before_midnight.remaining == 0
        assert after_midnight.used_today == 0
        assert after_midnight.remaining == 3

    def test_budget_serializes_camel_case(self):
        budget = higher_tier_budget(None, TIER_CONFIG, False, TODAY)
        assert set(budget.model_dump(by_alias=True)) == {
            "dailyLimit", "usedToday", "remaining", "isUnlimited",
        }

    def test_custom_tier_config(self):
        config = {
            tier: TierConfig(min_score=0, daily_higher_tier_conversations=0, max_photos=1)
            for tier in ReputationTier
        }
        budget = higher_tier_budget(ReputationRecord(), config, False, TODAY)
        assert budget.remaining == 0


# ============================================================================
# Score Calculation
# ============================================================================

class TestScore:

    def test_signal_defaults_for_new_account(self):
        signals = derive_signals(None)
        assert signals == ReputationSignals()
        assert calculate_score(signals) == 475
        assert score_to_tier(475) is ReputationTier.ESTABLISHED

    def test_ideal_signals_reach_top_tier(self):
        now = datetime(2026, 10, 19, tzinfo=timezone.utc)
        signals = derive_signals(
            MessageMetrics(
                received=50,
                replied=50,
                conversations_started=10,
                conversations_with_replies=10,
                total_message_length=20000,
                message_count=100,
            ),
            profile_completion=100,
            identity_verified=True,
            account_created_at=now - timedelta(days=400),
            now=now,
        )
        assert calculate_score(signals) == 1000
        assert score_to_tier(1000) is ReputationTier.DISTINGUISHED

    def test_blocks_and_reports_lower_the_score(self):
        metrics = MessageMetrics(received=10, conversations_started=10)
        clean = calculate_score(derive_signals(metrics))
        flagged = calculate_score(derive_signals(metrics, blocks_received=20, reports_received=20))
        assert flagged < clean

    def test_naive_creation_time_is_treated_as_utc(self):
        now = datetime(2026, 10, 19, 12, tzinfo=timezone.utc)
        signals = derive_signals(None, account_created_at=datetime(2026, 10, 9, 12), now=now)
        assert signals.account_age_days == 10

    @pytest.mark.parametrize("score,tier", [
        (0, ReputationTier.NEW),
        (199, ReputationTier.NEW),
        (200, ReputationTier.ACTIVE),
        (400, ReputationTier.ESTABLISHED),
        (650, ReputationTier.TRUSTED),
        (800, ReputationTier.DISTINGUISHED),
    ])
    def test_score_thresholds(self, score, tier):
        assert score_to_tier(score) is tier
