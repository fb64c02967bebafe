"""
Entitlement Domain Models

Composes subscription state and reputation state into the capability set
the rest of the platform checks before privileged actions.

``capabilities`` is a pure function of its inputs. The upgrade prompt that
follows a denied UI action lives in ``EntitlementGate`` and never feeds back
into the computation.
"""

from enum import Enum
from typing import Callable, Optional

from pydantic import ConfigDict

from gylde.domain.base import CamelModel, ensure_exhaustive
from gylde.domain.reputation import (
    TIER_CONFIG,
    HigherTierBudget,
    ReputationRecord,
    ReputationTier,
    TierConfig,
    higher_tier_budget,
    resolve_tier,
)
from gylde.domain.subscription import (
    Subscription,
    SubscriptionTier,
    effective_tier,
    is_premium,
)


class Feature(str, Enum):
    """Boolean capabilities gated by subscription tier."""
    UNLIMITED_MESSAGING = "unlimited_messaging"
    CAN_MESSAGE_ANY_TIER = "can_message_any_tier"
    ADVANCED_FILTERS = "advanced_filters"
    PRIORITY_VISIBILITY = "priority_visibility"
    CAN_ACCESS_PRIVATE_PHOTOS = "can_access_private_photos"
    CAN_SEE_WHO_VIEWED_PROFILE = "can_see_who_viewed_profile"
    CAN_SEE_WHO_FAVORITED = "can_see_who_favorited"
    HAS_AI_ASSISTANT = "has_ai_assistant"
    HAS_VIRTUAL_PHONE = "has_virtual_phone"
    READ_RECEIPTS = "read_receipts"


_PLUS_FEATURES = frozenset({
    Feature.UNLIMITED_MESSAGING,
    Feature.CAN_MESSAGE_ANY_TIER,
    Feature.ADVANCED_FILTERS,
    Feature.CAN_ACCESS_PRIVATE_PHOTOS,
    Feature.CAN_SEE_WHO_VIEWED_PROFILE,
    Feature.CAN_SEE_WHO_FAVORITED,
    Feature.READ_RECEIPTS,
})

FEATURE_TABLE: dict[SubscriptionTier, frozenset[Feature]] = {
    SubscriptionTier.FREE: frozenset(),
    SubscriptionTier.PLUS: _PLUS_FEATURES,
    SubscriptionTier.ELITE: _PLUS_FEATURES | {
        Feature.PRIORITY_VISIBILITY,
        Feature.HAS_AI_ASSISTANT,
        Feature.HAS_VIRTUAL_PHONE,
    },
}

ensure_exhaustive(FEATURE_TABLE, SubscriptionTier, "FEATURE_TABLE")


class CapabilitySet(CamelModel):
    """Resolved, per-user set of allowed actions and numeric limits."""
    model_config = ConfigDict(frozen=True)

    subscription_tier: SubscriptionTier
    reputation_tier: ReputationTier
    is_premium: bool
    max_photos: int
    can_message_cross_tier: bool
    higher_tier_budget: HigherTierBudget
    features: dict[Feature, bool]

    def allows(self, feature: Feature) -> bool:
        return self.features.get(feature, False)

    def can_add_photo(self, current_count: int) -> bool:
        return current_count < self.max_photos


def capabilities(
    subscription: Optional[Subscription],
    reputation: Optional[ReputationRecord],
    tier_config: dict[ReputationTier, TierConfig] = TIER_CONFIG,
    remote_max_photos_for_premium: int = 20,
    *,
    today: str,
) -> CapabilitySet:
    """
    Compute the capability set for one user.

    Subscription tier drives feature gates. Reputation tier drives the
    cross-tier messaging budget and, for non-premium users, the photo cap.

    Args:
        subscription: Current subscription or None
        reputation: Current reputation record or None
        tier_config: Per-reputation-tier limits
        remote_max_photos_for_premium: Photo cap for premium users
        today: UTC ISO date for counter rollover

    Returns:
        CapabilitySet, identical for identical inputs
    """
    premium = is_premium(subscription)
    reputation_tier = resolve_tier(reputation)
    sub_tier = effective_tier(subscription)

    budget = higher_tier_budget(reputation, tier_config, premium, today)
    max_photos = (
        remote_max_photos_for_premium if premium
        else tier_config[reputation_tier].max_photos
    )
    granted = FEATURE_TABLE[sub_tier]

    return CapabilitySet(
        subscription_tier=sub_tier,
        reputation_tier=reputation_tier,
        is_premium=premium,
        max_photos=max_photos,
        can_message_cross_tier=budget.remaining != 0,
        higher_tier_budget=budget,
        features={feature: feature in granted for feature in Feature},
    )


def revalidate(claimed: CapabilitySet, actual: CapabilitySet) -> list[str]:
    """Names of fields where a client-asserted capability set disagrees with the server's."""
    claimed_fields = claimed.model_dump()
    actual_fields = actual.model_dump()
    return sorted(
        name for name, value in actual_fields.items()
        if claimed_fields.get(name) != value
    )


class EntitlementGate:
    """
    Capability checks for UI-facing actions, with an upgrade-prompt hook.

    ``check`` answers the question; ``on_denied`` is the caller's side effect
    and runs only for denied checks that ask for a prompt.
    """

    def __init__(
        self,
        capability_set: CapabilitySet,
        on_denied: Optional[Callable[[Feature], None]] = None,
    ):
        self._capabilities = capability_set
        self._on_denied = on_denied

    @property
    def capabilities(self) -> CapabilitySet:
        return self._capabilities

    def check(self, feature: Feature, prompt_on_denial: bool = True) -> bool:
        allowed = self._capabilities.allows(feature)
        if not allowed and prompt_on_denial and self._on_denied is not None:
            self._on_denied(feature)
        return allowed
