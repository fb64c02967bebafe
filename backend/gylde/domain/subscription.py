"""
Subscription Domain Models

Domain models for the subscription ledger: tier/status/interval enums,
the subscription entity, change classification, and the API DTOs.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from gylde.domain.base import CamelModel


class SubscriptionTier(str, Enum):
    """Subscription tier levels, declared lowest first."""
    FREE = "free"
    PLUS = "plus"
    ELITE = "elite"

    @property
    def rank(self) -> int:
        return SUBSCRIPTION_TIER_ORDER.index(self)

    @property
    def is_paid(self) -> bool:
        return self is not SubscriptionTier.FREE


SUBSCRIPTION_TIER_ORDER: tuple[SubscriptionTier, ...] = tuple(SubscriptionTier)


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"

    @classmethod
    def from_provider(cls, value: Optional[str]) -> "SubscriptionStatus":
        """Map a billing provider status; incomplete and unpaid states count as canceled."""
        try:
            return cls(value)
        except ValueError:
            return cls.CANCELED


class BillingInterval(str, Enum):
    """Billing interval for paid subscriptions."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class ChangeAction(str, Enum):
    """Outcome of classifying a requested plan change."""
    NEW = "new"
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    INTERVAL_CHANGE = "interval_change"
    NO_OP = "no_op"


PREMIUM_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})
# A subscription in one of these states still exists at the provider.
LIVE_STATUSES = PREMIUM_STATUSES | {SubscriptionStatus.PAST_DUE}


# =============================================================================
# Domain Entities
# =============================================================================

class Subscription(BaseModel):
    """Core subscription domain entity."""
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    tier: SubscriptionTier = SubscriptionTier.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    billing_interval: Optional[BillingInterval] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    cancel_at: Optional[datetime] = None
    pending_downgrade_tier: Optional[SubscriptionTier] = None
    pending_downgrade_date: Optional[datetime] = None

    @property
    def effective_pending_downgrade(self) -> Optional[SubscriptionTier]:
        """Scheduled downgrade, suppressed while a cancellation is scheduled."""
        if self.cancel_at_period_end:
            return None
        return self.pending_downgrade_tier

    @property
    def effective_pending_downgrade_date(self) -> Optional[datetime]:
        if self.effective_pending_downgrade is None:
            return None
        return self.pending_downgrade_date

    @property
    def has_live_paid_plan(self) -> bool:
        return self.tier.is_paid and self.status in LIVE_STATUSES


class ChangePlan(BaseModel):
    """Classification of a requested change against the current subscription."""
    model_config = ConfigDict(frozen=True)

    action: ChangeAction
    via_portal: bool = False
    from_tier: SubscriptionTier
    to_tier: SubscriptionTier
    from_interval: Optional[BillingInterval] = None
    to_interval: Optional[BillingInterval] = None

    @property
    def takes_effect_immediately(self) -> bool:
        return self.action in (
            ChangeAction.NEW, ChangeAction.UPGRADE, ChangeAction.INTERVAL_CHANGE,
        )


def is_premium(subscription: Optional[Subscription]) -> bool:
    """Paid tier in an active or trialing state."""
    if subscription is None:
        return False
    return subscription.tier.is_paid and subscription.status in PREMIUM_STATUSES


def effective_tier(subscription: Optional[Subscription]) -> SubscriptionTier:
    """Tier used for feature gates: free unless the subscription is premium."""
    if not is_premium(subscription):
        return SubscriptionTier.FREE
    return subscription.tier


def classify_change(
    current: Optional[Subscription],
    target_tier: SubscriptionTier,
    target_interval: Optional[BillingInterval] = None,
) -> ChangePlan:
    """
    Classify a requested plan change.

    Exactly one action is produced for any input. Downgrades to free are
    cancellations and are routed to the billing portal.

    Args:
        current: Current subscription, or None for a user without one
        target_tier: Requested tier
        target_interval: Requested interval; paid targets default to monthly

    Returns:
        ChangePlan describing the transition
    """
    has_paid = current is not None and current.has_live_paid_plan
    from_tier = current.tier if has_paid else SubscriptionTier.FREE
    from_interval = current.billing_interval if has_paid else None

    def plan(action: ChangeAction, via_portal: bool = False, to_interval=None) -> ChangePlan:
        return ChangePlan(
            action=action,
            via_portal=via_portal,
            from_tier=from_tier,
            to_tier=target_tier,
            from_interval=from_interval,
            to_interval=to_interval,
        )

    if not target_tier.is_paid:
        if not has_paid:
            return plan(ChangeAction.NO_OP)
        return plan(ChangeAction.DOWNGRADE, via_portal=True)

    interval = target_interval or BillingInterval.MONTHLY

    if not has_paid:
        return plan(ChangeAction.NEW, to_interval=interval)

    if target_tier.rank > from_tier.rank:
        return plan(ChangeAction.UPGRADE, to_interval=interval)
    if target_tier.rank < from_tier.rank:
        return plan(ChangeAction.DOWNGRADE, to_interval=interval)
    if interval != from_interval:
        return plan(ChangeAction.INTERVAL_CHANGE, to_interval=interval)
    return plan(ChangeAction.NO_OP, to_interval=interval)


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CheckoutRequest(CamelModel):
    """Request DTO for createSubscriptionCheckout."""
    tier: SubscriptionTier = Field(description="Subscription tier to purchase")
    interval: Optional[BillingInterval] = Field(
        default=None,
        description="Billing interval (monthly or quarterly)"
    )


class CheckoutResponse(CamelModel):
    """Response DTO for createSubscriptionCheckout."""
    session_id: Optional[str] = None
    url: Optional[str] = None
    updated: Optional[bool] = None
    message: Optional[str] = None


class PortalResponse(CamelModel):
    """Response DTO for createCustomerPortal."""
    url: str


class ChangePreviewResponse(CamelModel):
    """What a checkout request would do, without doing it."""
    action: ChangeAction
    via_portal: bool
    takes_effect_immediately: bool
    effective_at: Optional[datetime] = None


class SubscriptionStatusResponse(CamelModel):
    """Response DTO for subscription status."""
    tier: SubscriptionTier
    status: SubscriptionStatus
    is_premium: bool
    billing_interval: Optional[BillingInterval] = None
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    cancel_at: Optional[datetime] = None
    pending_downgrade_tier: Optional[SubscriptionTier] = None
    pending_downgrade_date: Optional[datetime] = None

    @classmethod
    def from_subscription(cls, subscription: Subscription) -> "SubscriptionStatusResponse":
        return cls(
            tier=subscription.tier,
            status=subscription.status,
            is_premium=is_premium(subscription),
            billing_interval=subscription.billing_interval,
            current_period_end=subscription.current_period_end,
            cancel_at_period_end=subscription.cancel_at_period_end,
            cancel_at=subscription.cancel_at,
            pending_downgrade_tier=subscription.effective_pending_downgrade,
            pending_downgrade_date=subscription.effective_pending_downgrade_date,
        )
