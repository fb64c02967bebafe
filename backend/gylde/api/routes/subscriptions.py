"""
Subscription API Routes

REST API endpoints for subscription management.
Checkout covers every plan change: new subscriptions go through Stripe
Checkout, upgrades and interval changes apply in place, downgrades are
scheduled for the period end, and cancellation is sent to the portal.
"""

import logging
from typing import Optional

from fastapi import APIRouter

from gylde.api.dependencies import CurrentUser, CurrentUserId, SubscriptionServiceDep
from gylde.domain.subscription import (
    BillingInterval,
    ChangePreviewResponse,
    CheckoutRequest,
    CheckoutResponse,
    PortalResponse,
    SubscriptionStatusResponse,
    SubscriptionTier,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions")


# =============================================================================
# Subscription Status Endpoints
# =============================================================================

@router.get("/status", response_model=SubscriptionStatusResponse, operation_id="getSubscriptionStatus")
async def get_subscription_status(user_id: CurrentUserId, service: SubscriptionServiceDep):
    """
    Get the current user's subscription status.

    Users who never subscribed are reported on the free tier.
    """
    subscription = await service.get_subscription(user_id)
    return SubscriptionStatusResponse.from_subscription(subscription)


@router.get("/change-preview", response_model=ChangePreviewResponse, operation_id="previewSubscriptionChange")
async def preview_subscription_change(
    tier: SubscriptionTier,
    user_id: CurrentUserId,
    service: SubscriptionServiceDep,
    interval: Optional[BillingInterval] = None,
):
    """What a checkout for this plan would do, and when it takes effect."""
    return await service.preview_change(user_id, tier, interval)


# =============================================================================
# Checkout Endpoints
# =============================================================================

@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    response_model_exclude_none=True,
    operation_id="createSubscriptionCheckout",
)
async def create_subscription_checkout(
    request: CheckoutRequest,
    user: CurrentUser,
    service: SubscriptionServiceDep,
):
    """
    Start or change the caller's subscription.

    Returns:
        CheckoutResponse with a checkout or portal URL, or ``updated`` when
        the change was applied without a redirect
    """
    return await service.request_change(
        user.user_id,
        request.tier,
        request.interval,
        email=user.email,
    )


# =============================================================================
# Portal Endpoints
# =============================================================================

@router.post("/portal", response_model=PortalResponse, operation_id="createCustomerPortal")
async def create_customer_portal(user_id: CurrentUserId, service: SubscriptionServiceDep):
    """
    Create a Stripe Customer Portal session.

    Allows customers to manage their subscription:
    - Update payment method
    - Cancel subscription
    - View invoices
    """
    return await service.create_portal(user_id)
