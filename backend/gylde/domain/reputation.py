"""
Reputation Domain Models

Pure computation over a user's reputation record: tier resolution,
the daily higher-tier conversation budget, and the internal 0-1000 score.

Reputation is independent of payment. It throttles how many new
conversations a user may open per day with members of a higher tier.
Premium subscribers bypass that throttle entirely.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from gylde.domain.base import CamelModel, ensure_exhaustive
from gylde.utils.datetime import as_utc


UNLIMITED = -1


class ReputationTier(str, Enum):
    """Reputation tiers, declared lowest first."""
    NEW = "new"
    ACTIVE = "active"
    ESTABLISHED = "established"
    TRUSTED = "trusted"
    DISTINGUISHED = "distinguished"

    @property
    def rank(self) -> int:
        return REPUTATION_TIER_ORDER.index(self)


REPUTATION_TIER_ORDER: tuple[ReputationTier, ...] = tuple(ReputationTier)
LOWEST_TIER = REPUTATION_TIER_ORDER[0]


class TierConfig(BaseModel):
    """Limits attached to one reputation tier."""
    model_config = ConfigDict(frozen=True)

    min_score: int
    daily_higher_tier_conversations: int = Field(ge=UNLIMITED)
    max_photos: int = Field(ge=1)


# =============================================================================
# Tier Configuration (Business Logic)
# =============================================================================

TIER_CONFIG: dict[ReputationTier, TierConfig] = {
    ReputationTier.NEW: TierConfig(
        min_score=0, daily_higher_tier_conversations=1, max_photos=3,
    ),
    ReputationTier.ACTIVE: TierConfig(
        min_score=200, daily_higher_tier_conversations=3, max_photos=5,
    ),
    ReputationTier.ESTABLISHED: TierConfig(
        min_score=400, daily_higher_tier_conversations=5, max_photos=8,
    ),
    ReputationTier.TRUSTED: TierConfig(
        min_score=600, daily_higher_tier_conversations=10, max_photos=12,
    ),
    ReputationTier.DISTINGUISHED: TierConfig(
        min_score=800, daily_higher_tier_conversations=UNLIMITED, max_photos=15,
    ),
}

ensure_exhaustive(TIER_CONFIG, ReputationTier, "TIER_CONFIG")


# Signal weights for the score (sum to 1.0). Ratios marked inverted count
# against the user.
SCORE_WEIGHTS: dict[str, float] = {
    "profile_completion": 0.10,
    "identity_verified": 0.20,
    "account_age": 0.10,
    "response_rate": 0.15,
    "block_ratio": 0.15,  # inverted
    "report_ratio": 0.10,  # inverted
    "conversation_quality": 0.10,
    "ghost_rate": 0.05,  # inverted
    "burst_score": 0.05,  # inverted
}

MAX_ACCOUNT_AGE_DAYS = 365
QUALITY_TARGET_MESSAGE_LENGTH = 100
MAX_SCORE = 1000


# =============================================================================
# Domain Entities
# =============================================================================

class ReputationRecord(BaseModel):
    """A user's reputation state as persisted."""
    model_config = ConfigDict(from_attributes=True)

    tier: Optional[ReputationTier] = None
    daily_higher_tier_conversation_limit: Optional[int] = Field(default=None, ge=UNLIMITED)
    higher_tier_conversations_today: int = Field(default=0, ge=0)
    counters_as_of: Optional[str] = None

    def used_on(self, today: str) -> int:
        """Counter value for ``today``; a counter stamped on another day reads as 0."""
        if self.counters_as_of != today:
            return 0
        return self.higher_tier_conversations_today


class HigherTierBudget(CamelModel):
    """Resolved daily budget for opening conversations with higher tiers."""
    daily_limit: int
    used_today: int
    remaining: int
    is_unlimited: bool


class MessageMetrics(BaseModel):
    """Raw messaging counters maintained by the messaging subsystem."""
    received: int = 0
    replied: int = 0
    conversations_started: int = 0
    conversations_with_replies: int = 0
    total_message_length: int = 0
    message_count: int = 0


class ReputationSignals(BaseModel):
    """Normalized behavioural signals feeding the score."""
    profile_completion: float = Field(default=0, ge=0, le=100)
    identity_verified: bool = False
    account_age_days: int = Field(default=0, ge=0)
    response_rate: float = Field(default=0.5, ge=0, le=1)
    conversation_quality: float = Field(default=0.5, ge=0, le=1)
    block_ratio: float = Field(default=0, ge=0, le=1)
    report_ratio: float = Field(default=0, ge=0, le=1)
    ghost_rate: float = Field(default=0, ge=0, le=1)
    burst_score: float = Field(default=0, ge=0, le=1)


# =============================================================================
# Tier Resolution
# =============================================================================

def resolve_tier(record: Optional[ReputationRecord]) -> ReputationTier:
    """Return the record's tier, defaulting to the lowest tier."""
    if record is None or record.tier is None:
        return LOWEST_TIER
    return record.tier


def compare_tiers(first: ReputationTier, second: ReputationTier) -> int:
    """Positive when ``first`` ranks above ``second``."""
    return first.rank - second.rank


def is_higher_tier(sender: ReputationTier, recipient: ReputationTier) -> bool:
    """True when messaging ``recipient`` counts against the sender's budget."""
    return compare_tiers(recipient, sender) > 0


def higher_tier_budget(
    record: Optional[ReputationRecord],
    tier_config: dict[ReputationTier, TierConfig],
    is_premium: bool,
    today: str,
) -> HigherTierBudget:
    """
    Compute the higher-tier conversation budget for the current day.

    Args:
        record: Persisted reputation record, or None for a user without one
        tier_config: Table of per-tier limits
        is_premium: Whether the user holds an active paid subscription
        today: UTC ISO date used for counter rollover

    Returns:
        HigherTierBudget where remaining is -1 exactly when is_unlimited
    """
    if is_premium:
        return HigherTierBudget(
            daily_limit=UNLIMITED, used_today=0, remaining=UNLIMITED, is_unlimited=True,
        )

    tier = resolve_tier(record)
    daily_limit = tier_config[tier].daily_higher_tier_conversations
    if record is not None and record.daily_higher_tier_conversation_limit is not None:
        daily_limit = record.daily_higher_tier_conversation_limit

    used_today = record.used_on(today) if record is not None else 0
    is_unlimited = daily_limit == UNLIMITED
    remaining = UNLIMITED if is_unlimited else max(0, daily_limit - used_today)

    return HigherTierBudget(
        daily_limit=daily_limit,
        used_today=used_today,
        remaining=remaining,
        is_unlimited=is_unlimited,
    )


# =============================================================================
# Score Calculation
# =============================================================================

def derive_signals(
    metrics: Optional[MessageMetrics],
    profile_completion: float = 0,
    identity_verified: bool = False,
    account_created_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
    blocks_received: int = 0,
    reports_received: int = 0,
    burst_score: float = 0,
) -> ReputationSignals:
    """Turn raw counters into normalized signals."""
    signals = ReputationSignals(
        profile_completion=min(max(profile_completion, 0), 100),
        identity_verified=identity_verified,
        burst_score=min(max(burst_score, 0), 1),
    )

    if account_created_at is not None and now is not None:
        signals.account_age_days = max(0, (as_utc(now) - as_utc(account_created_at)).days)

    if metrics is None:
        return signals

    if metrics.received > 0:
        signals.response_rate = min(metrics.replied / metrics.received, 1)

    if metrics.message_count > 0:
        average_length = metrics.total_message_length / metrics.message_count
        signals.conversation_quality = min(average_length / QUALITY_TARGET_MESSAGE_LENGTH, 1)

    if metrics.conversations_started > 0:
        abandoned = metrics.conversations_started - metrics.conversations_with_replies
        signals.ghost_rate = min(max(abandoned, 0) / metrics.conversations_started, 1)

    total_interactions = metrics.received + metrics.conversations_started
    if total_interactions > 0:
        signals.block_ratio = min(blocks_received / total_interactions, 1)
        signals.report_ratio = min(reports_received / total_interactions, 1)

    return signals


def calculate_score(signals: ReputationSignals) -> int:
    """Weighted 0-1000 score. Internal only, never returned to clients."""
    w = SCORE_WEIGHTS
    age_ratio = min(signals.account_age_days / MAX_ACCOUNT_AGE_DAYS, 1)

    total = (
        (signals.profile_completion / 100) * w["profile_completion"]
        + (1 if signals.identity_verified else 0) * w["identity_verified"]
        + age_ratio * w["account_age"]
        + signals.response_rate * w["response_rate"]
        + (1 - signals.block_ratio) * w["block_ratio"]
        + (1 - signals.report_ratio) * w["report_ratio"]
        + signals.conversation_quality * w["conversation_quality"]
        + (1 - signals.ghost_rate) * w["ghost_rate"]
        + (1 - signals.burst_score) * w["burst_score"]
    )
    return round(max(0, min(MAX_SCORE, total * MAX_SCORE)))


def score_to_tier(
    score: int,
    tier_config: dict[ReputationTier, TierConfig] = TIER_CONFIG,
) -> ReputationTier:
    """Highest tier whose minimum score the given score reaches."""
    for tier in reversed(REPUTATION_TIER_ORDER):
        if score >= tier_config[tier].min_score:
            return tier
    return LOWEST_TIER


# =============================================================================
# Request/Response DTOs
# =============================================================================

class RefreshReputationResponse(CamelModel):
    """Response for refreshMyReputation. The score stays internal."""
    success: bool = True
    tier: ReputationTier


class ReputationStatusResponse(CamelModel):
    """A user's own tier and today's budget."""
    tier: ReputationTier
    budget: HigherTierBudget


class HigherTierConversationRequest(CamelModel):
    """Reported by the messaging subsystem when a new conversation starts."""
    recipient_id: str = Field(min_length=1)
