"""
Stripe Payment Service

Infrastructure service for Stripe payment processing.
Handles checkout sessions, customer management, in-place plan changes,
scheduled downgrades and the billing portal.

- Hosted Checkout for new subscriptions
- Subscription item swaps for upgrades and interval changes
- Subscription schedules for downgrades at period end
- Customer Portal for cancellation (downgrade to free)
"""

import logging
from typing import Optional, Tuple
import stripe
from stripe import StripeError

from gylde.config.settings import get_settings
from gylde.domain.subscription import (
    SubscriptionTier,
    BillingInterval,
)


logger = logging.getLogger(__name__)


class StripeServiceError(Exception):
    """Base exception for Stripe service errors."""

    def __init__(self, message: str, already_exists: bool = False, configuration: bool = False):
        super().__init__(message)
        self.already_exists = already_exists
        self.configuration = configuration


class StripeService:
    """
    Stripe payment processing service.

    All methods are stateless and idempotent where possible.
    """

    def __init__(self):
        """Initialize Stripe with API key from settings."""
        settings = get_settings()
        self._api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret

        if self._api_key:
            stripe.api_key = self._api_key

        # Price ID mapping: (tier, interval) -> stripe_price_id
        self._price_map = {
            (SubscriptionTier.PLUS, BillingInterval.MONTHLY): settings.stripe_price_plus_monthly,
            (SubscriptionTier.PLUS, BillingInterval.QUARTERLY): settings.stripe_price_plus_quarterly,
            (SubscriptionTier.ELITE, BillingInterval.MONTHLY): settings.stripe_price_elite_monthly,
            (SubscriptionTier.ELITE, BillingInterval.QUARTERLY): settings.stripe_price_elite_quarterly,
        }

    def get_price_id(
        self,
        tier: SubscriptionTier,
        interval: BillingInterval,
    ) -> str:
        """Get Stripe Price ID for given tier/interval combination."""
        price_id = self._price_map.get((tier, interval))

        if not price_id:
            raise StripeServiceError(
                f"No price configured for {tier.value}/{interval.value}",
                configuration=True,
            )

        return price_id

    def plan_for_price(
        self,
        price_id: Optional[str],
    ) -> Optional[Tuple[SubscriptionTier, BillingInterval]]:
        """Reverse lookup of a configured price id."""
        if not price_id:
            return None
        for plan, configured in self._price_map.items():
            if configured == price_id:
                return plan
        return None

    # =========================================================================
    # Customer Management
    # =========================================================================

    async def create_customer(
        self,
        user_id: str,
        email: Optional[str] = None,
    ) -> stripe.Customer:
        """
        Create a new Stripe customer.

        Args:
            user_id: Internal user ID (stored in metadata)
            email: Customer email for receipts

        Returns:
            stripe.Customer object
        """
        try:
            customer = stripe.Customer.create(
                email=email,
                metadata={
                    "user_id": user_id,
                    "source": "gylde",
                },
            )
            logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
            return customer

        except StripeError as e:
            logger.error(f"Failed to create Stripe customer: {e}")
            raise StripeServiceError(f"Failed to create customer: {e.user_message}")

    async def get_or_create_customer(
        self,
        user_id: str,
        email: Optional[str] = None,
        existing_customer_id: Optional[str] = None,
    ) -> stripe.Customer:
        """
        Get existing customer or create new one.

        Args:
            user_id: Internal user ID
            email: Customer email
            existing_customer_id: Optional existing Stripe customer ID

        Returns:
            stripe.Customer object
        """
        if existing_customer_id:
            try:
                customer = stripe.Customer.retrieve(existing_customer_id)
                if not customer.get("deleted"):
                    return customer
            except StripeError:
                logger.warning(f"Customer {existing_customer_id} not found, creating new")

        return await self.create_customer(user_id, email)

    # =========================================================================
    # Checkout Session (new subscriptions)
    # =========================================================================

    async def has_active_subscription(self, customer_id: str) -> bool:
        """Whether the customer already holds an active subscription at Stripe."""
        try:
            existing = stripe.Subscription.list(customer=customer_id, status="active", limit=1)
            return len(existing.data) > 0
        except StripeError as e:
            logger.error(f"Failed to list subscriptions for {customer_id}: {e}")
            raise StripeServiceError(f"Failed to check subscriptions: {e.user_message}")

    async def create_checkout_session(
        self,
        customer_id: str,
        tier: SubscriptionTier,
        interval: BillingInterval,
        success_url: str,
        cancel_url: str,
        user_id: str,
    ) -> stripe.checkout.Session:
        """
        Create a Stripe Checkout Session for subscription.

        Args:
            customer_id: Stripe customer ID
            tier: Subscription tier to purchase
            interval: Monthly or quarterly billing
            success_url: Redirect after successful payment
            cancel_url: Redirect after cancelled payment
            user_id: Internal user ID for metadata

        Returns:
            stripe.checkout.Session with checkout URL
        """
        price_id = self.get_price_id(tier, interval)
        metadata = {"user_id": user_id, "tier": tier.value, "interval": interval.value}

        try:
            session = stripe.checkout.Session.create(
                customer=customer_id,
                payment_method_types=["card"],
                line_items=[
                    {
                        "price": price_id,
                        "quantity": 1,
                    }
                ],
                mode="subscription",
                success_url=f"{success_url}&session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=cancel_url,
                metadata=metadata,
                subscription_data={"metadata": metadata},
            )

            logger.info(
                f"Created checkout session {session.id} for user {user_id}, "
                f"tier={tier.value}, interval={interval.value}"
            )
            return session

        except StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise StripeServiceError(
                f"Failed to create checkout: {e.user_message}",
                already_exists=getattr(e, "code", None) == "resource_already_exists",
            )

    # =========================================================================
    # In-place plan changes
    # =========================================================================

    async def change_plan(
        self,
        subscription_id: str,
        tier: SubscriptionTier,
        interval: BillingInterval,
        reset_billing_cycle: bool = False,
    ) -> stripe.Subscription:
        """
        Swap the subscription's price immediately.

        Upgrades invoice the prorated difference right away. Interval changes
        restart the billing cycle and credit unused time from the old cycle.
        A downgrade scheduled earlier is released first, otherwise its next
        phase would still apply at period end.

        Args:
            subscription_id: Stripe subscription ID
            tier: Target tier
            interval: Target interval
            reset_billing_cycle: Anchor the billing cycle to now

        Returns:
            Updated stripe.Subscription
        """
        price_id = self.get_price_id(tier, interval)

        try:
            current = stripe.Subscription.retrieve(subscription_id)
            item_id = current["items"]["data"][0]["id"]

            schedule_id = current.get("schedule")
            if schedule_id:
                stripe.SubscriptionSchedule.release(schedule_id)
                logger.info(f"Released schedule {schedule_id} of subscription {subscription_id}")

            params = {
                "items": [{"id": item_id, "price": price_id}],
                "metadata": {"tier": tier.value, "interval": interval.value},
            }
            if reset_billing_cycle:
                params["billing_cycle_anchor"] = "now"
                params["proration_behavior"] = "create_prorations"
            else:
                params["proration_behavior"] = "always_invoice"

            subscription = stripe.Subscription.modify(subscription_id, **params)
            logger.info(
                f"Changed subscription {subscription_id} to {tier.value}/{interval.value}, "
                f"reset_billing_cycle={reset_billing_cycle}"
            )
            return subscription

        except StripeError as e:
            logger.error(f"Failed to change subscription plan: {e}")
            raise StripeServiceError(
                f"Failed to change plan: {e.user_message}",
                already_exists=getattr(e, "code", None) == "resource_already_exists",
            )

    async def schedule_downgrade(
        self,
        subscription_id: str,
        tier: SubscriptionTier,
        interval: BillingInterval,
    ) -> stripe.SubscriptionSchedule:
        """
        Schedule a lower-tier price to start at the end of the current period.

        Args:
            subscription_id: Stripe subscription ID
            tier: Target tier
            interval: Target interval

        Returns:
            stripe.SubscriptionSchedule
        """
        price_id = self.get_price_id(tier, interval)

        try:
            current = stripe.Subscription.retrieve(subscription_id)
            schedule_id = current.get("schedule")
            if schedule_id:
                schedule = stripe.SubscriptionSchedule.retrieve(schedule_id)
            else:
                schedule = stripe.SubscriptionSchedule.create(from_subscription=subscription_id)

            current_phase = schedule["phases"][0]
            schedule = stripe.SubscriptionSchedule.modify(
                schedule["id"],
                end_behavior="release",
                phases=[
                    {
                        "items": [
                            {"price": item["price"], "quantity": item.get("quantity", 1)}
                            for item in current_phase["items"]
                        ],
                        "start_date": current_phase["start_date"],
                        "end_date": current_phase["end_date"],
                    },
                    {
                        "items": [{"price": price_id, "quantity": 1}],
                        "metadata": {"tier": tier.value, "interval": interval.value},
                    },
                ],
            )
            logger.info(
                f"Scheduled downgrade of {subscription_id} to {tier.value}/{interval.value}"
            )
            return schedule

        except StripeError as e:
            logger.error(f"Failed to schedule downgrade: {e}")
            raise StripeServiceError(f"Failed to schedule downgrade: {e.user_message}")

    # =========================================================================
    # Customer Portal (cancellation and payment methods)
    # =========================================================================

    async def create_portal_session(
        self,
        customer_id: str,
        return_url: str,
    ) -> stripe.billing_portal.Session:
        """
        Create a Billing Portal session for self-service management.

        Args:
            customer_id: Stripe customer ID
            return_url: URL to return to after portal session

        Returns:
            stripe.billing_portal.Session with portal URL
        """
        try:
            session = stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=return_url,
            )

            logger.info(f"Created portal session for customer {customer_id}")
            return session

        except StripeError as e:
            logger.error(f"Failed to create portal session: {e}")
            raise StripeServiceError(f"Failed to create portal: {e.user_message}")

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook_signature(
        self,
        payload: bytes,
        signature: str,
    ) -> stripe.Event:
        """
        Verify webhook signature and construct event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header

        Returns:
            stripe.Event if valid

        Raises:
            StripeServiceError if signature invalid
        """
        if not self._webhook_secret:
            raise StripeServiceError("Webhook secret not configured", configuration=True)

        try:
            return stripe.Webhook.construct_event(
                payload,
                signature,
                self._webhook_secret,
            )
        except ValueError as e:
            raise StripeServiceError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise StripeServiceError(f"Invalid signature: {e}")


# =============================================================================
# Singleton Instance (Dependency Injection Ready)
# =============================================================================

_stripe_service_instance: Optional[StripeService] = None


def get_stripe_service() -> StripeService:
    """Get or create Stripe service singleton."""
    global _stripe_service_instance

    if _stripe_service_instance is None:
        _stripe_service_instance = StripeService()

    return _stripe_service_instance
