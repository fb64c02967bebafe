"""
Stripe Webhook Handler

Handles Stripe webhook events for subscription lifecycle management.
Implements idempotent event processing backed by the database (survives restarts).

Handled events:
- checkout.session.completed: Link customer and subscription to the user
- customer.subscription.created / updated: Sync tier, status and period
- customer.subscription.deleted: Downgrade to free tier
- invoice.payment_failed: Mark past due

A failing handler answers 500 and leaves the event unrecorded, so Stripe
delivers it again.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from gylde.api.dependencies import SessionDep, StripeServiceDep
from gylde.infrastructure.db.repositories import WebhookEventRepository
from gylde.infrastructure.payments.stripe_service import StripeServiceError
from gylde.infrastructure.services.subscription_service import SubscriptionService


logger = logging.getLogger(__name__)

router = APIRouter()

SUBSCRIPTION_SYNC_EVENTS = frozenset({
    "customer.subscription.created",
    "customer.subscription.updated",
})


# =============================================================================
# Webhook Endpoint
# =============================================================================

@router.post("/webhooks/stripe", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    session: SessionDep,
    stripe_service: StripeServiceDep,
):
    """
    Handle Stripe webhook events.

    Verifies signature and processes subscription lifecycle events.
    Returns 200 OK to acknowledge receipt (Stripe will retry on failure).
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    if not signature:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature"
        )

    try:
        event = stripe_service.verify_webhook_signature(payload, signature)
    except StripeServiceError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature"
        )

    event_id = event.get("id")
    event_type = event.get("type")
    events = WebhookEventRepository(session)

    if await events.is_processed(event_id):
        logger.info(f"Event {event_id} already processed, skipping")
        return {"status": "already_processed"}

    logger.info(f"Processing webhook event: {event_type} ({event_id})")
    service = SubscriptionService(session, stripe_service)
    data = event["data"]["object"]

    try:
        if event_type == "checkout.session.completed":
            await service.apply_checkout_completed(data)

        elif event_type in SUBSCRIPTION_SYNC_EVENTS:
            await service.apply_provider_subscription(data)

        elif event_type == "customer.subscription.deleted":
            await service.apply_subscription_deleted(data)

        elif event_type == "invoice.payment_failed":
            await service.apply_payment_failed(data)

        else:
            logger.debug(f"Unhandled event type: {event_type}")

    except Exception as e:
        logger.error(f"Error processing webhook {event_type} ({event_id}): {e}")
        await session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook processing failed"
        )

    await events.mark_processed(event_id, event_type)
    await session.commit()
    return {"status": "success"}
