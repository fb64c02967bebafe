"""
Subscription Service

Drives the subscription ledger: classifies requested plan changes, carries
them out at Stripe, and applies Stripe webhook state to the user's row.

Failure mapping at this boundary:
- Stripe "already subscribed" -> AlreadyExistsError (message kept verbatim)
- missing price configuration -> FailedPreconditionError
- any other Stripe failure    -> InternalError (retryable, never retried here)
"""

import logging
from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from gylde.config.settings import Settings, get_settings
from gylde.domain.subscription import (
    LIVE_STATUSES,
    BillingInterval,
    ChangeAction,
    ChangePlan,
    ChangePreviewResponse,
    CheckoutResponse,
    PortalResponse,
    Subscription,
    SubscriptionStatus,
    SubscriptionTier,
    classify_change,
)
from gylde.infrastructure.db.models import UserPrivateData
from gylde.infrastructure.db.repositories import PrivateDataRepository
from gylde.infrastructure.exceptions import (
    AlreadyExistsError,
    FailedPreconditionError,
    InternalError,
)
from gylde.infrastructure.payments.stripe_service import StripeService, StripeServiceError
from gylde.infrastructure.services.entitlement_service import EntitlementService
from gylde.utils.datetime import from_unix


logger = logging.getLogger(__name__)


def _provider_error(error: StripeServiceError, operation: str) -> Exception:
    """Translate a Stripe failure into the API error taxonomy."""
    if error.already_exists:
        return AlreadyExistsError(str(error), operation=operation, original_error=error)
    if error.configuration:
        return FailedPreconditionError("Subscription not configured", original_error=error)
    return InternalError(str(error), provider="stripe", operation=operation, original_error=error)


class SubscriptionService:
    """
    Service for subscription changes and billing provider sync.
    """

    def __init__(
        self,
        session: AsyncSession,
        stripe_service: StripeService,
        settings: Optional[Settings] = None,
        entitlements: Optional[EntitlementService] = None,
    ):
        self._session = session
        self._stripe = stripe_service
        self._settings = settings or get_settings()
        self._private_repo = PrivateDataRepository(session)
        self._entitlements = entitlements or EntitlementService(session)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_subscription(self, user_id: str) -> Subscription:
        """The user's subscription; users without a row are on the free tier."""
        row = await self._private_repo.get(user_id)
        if row is None:
            return Subscription(user_id=user_id)
        return PrivateDataRepository.to_subscription(row)

    async def preview_change(
        self,
        user_id: str,
        tier: SubscriptionTier,
        interval: Optional[BillingInterval],
    ) -> ChangePreviewResponse:
        """Classify a change without touching Stripe."""
        current = await self.get_subscription(user_id)
        plan = classify_change(current, tier, interval)
        effective_at = None if plan.takes_effect_immediately else current.current_period_end
        return ChangePreviewResponse(
            action=plan.action,
            via_portal=plan.via_portal,
            takes_effect_immediately=plan.takes_effect_immediately,
            effective_at=effective_at,
        )

    # =========================================================================
    # Checkout and plan changes
    # =========================================================================

    async def request_change(
        self,
        user_id: str,
        tier: SubscriptionTier,
        interval: Optional[BillingInterval],
        email: Optional[str] = None,
    ) -> CheckoutResponse:
        """
        Carry out a requested plan change.

        Args:
            user_id: Calling user
            tier: Target tier
            interval: Target billing interval
            email: Customer email for new Stripe customers

        Returns:
            CheckoutResponse: a checkout or portal URL, or ``updated`` for
            in-place changes

        Raises:
            AlreadyExistsError: the target plan is the current plan
        """
        row = await self._private_repo.get_or_create(user_id, for_update=True)
        current = PrivateDataRepository.to_subscription(row)
        plan = classify_change(current, tier, interval)
        logger.info(
            f"Plan change for {user_id}: {plan.from_tier.value} -> {plan.to_tier.value} "
            f"classified as {plan.action.value}"
        )

        if plan.action is ChangeAction.NO_OP:
            await self._session.commit()
            raise AlreadyExistsError("Already subscribed to this plan", operation="checkout")

        if plan.via_portal:
            portal = await self._portal_for(row)
            await self._session.commit()
            return CheckoutResponse(
                url=portal.url,
                message="Cancel your subscription in the billing portal",
            )

        if plan.action is ChangeAction.NEW:
            return await self._start_checkout(row, plan, email)

        if not row.stripe_subscription_id:
            raise FailedPreconditionError("No subscription found")

        try:
            if plan.action is ChangeAction.DOWNGRADE:
                await self._stripe.schedule_downgrade(row.stripe_subscription_id, plan.to_tier, plan.to_interval)
            else:
                await self._stripe.change_plan(
                    row.stripe_subscription_id,
                    plan.to_tier,
                    plan.to_interval,
                    reset_billing_cycle=plan.action is ChangeAction.INTERVAL_CHANGE,
                )
        except StripeServiceError as e:
            raise _provider_error(e, plan.action.value) from e

        if plan.action is ChangeAction.DOWNGRADE:
            current.pending_downgrade_tier = plan.to_tier
            current.pending_downgrade_date = current.current_period_end
            message = f"Your plan will change to {plan.to_tier.value} at the end of the billing period"
        else:
            current.tier = plan.to_tier
            current.billing_interval = plan.to_interval
            current.pending_downgrade_tier = None
            current.pending_downgrade_date = None
            message = f"Your plan is now {plan.to_tier.value} ({plan.to_interval.value})"

        PrivateDataRepository.apply_subscription(row, current)
        self._session.add(row)
        await self._session.commit()
        await self._entitlements.publish(user_id)
        return CheckoutResponse(updated=True, message=message)

    async def create_portal(self, user_id: str) -> PortalResponse:
        """
        Open the Stripe billing portal for the user.

        Raises:
            FailedPreconditionError: the user has never been a Stripe customer
        """
        row = await self._private_repo.get(user_id)
        if row is None:
            raise FailedPreconditionError("No subscription found")
        return await self._portal_for(row)

    async def _portal_for(self, row: UserPrivateData) -> PortalResponse:
        if not row.stripe_customer_id:
            raise FailedPreconditionError("No subscription found")
        try:
            session = await self._stripe.create_portal_session(
                customer_id=row.stripe_customer_id,
                return_url=f"{self._settings.app_base_url}/subscription",
            )
        except StripeServiceError as e:
            raise _provider_error(e, "portal") from e
        return PortalResponse(url=session.url)

    async def _start_checkout(
        self,
        row: UserPrivateData,
        plan: ChangePlan,
        email: Optional[str],
    ) -> CheckoutResponse:
        base_url = self._settings.app_base_url
        try:
            customer = await self._stripe.get_or_create_customer(
                user_id=row.user_id,
                email=email,
                existing_customer_id=row.stripe_customer_id,
            )
            if row.stripe_customer_id != customer.id:
                row.stripe_customer_id = customer.id
                self._session.add(row)
                await self._session.commit()

            if await self._stripe.has_active_subscription(customer.id):
                raise AlreadyExistsError(
                    "You already have an active subscription", operation="checkout",
                )

            session = await self._stripe.create_checkout_session(
                customer_id=customer.id,
                tier=plan.to_tier,
                interval=plan.to_interval,
                success_url=f"{base_url}/discover?subscription=success",
                cancel_url=f"{base_url}/discover?subscription=canceled",
                user_id=row.user_id,
            )
        except StripeServiceError as e:
            raise _provider_error(e, "checkout") from e

        logger.info(f"Created checkout session {session.id} for user {row.user_id}")
        return CheckoutResponse(session_id=session.id, url=session.url)

    # =========================================================================
    # Webhook sync
    # =========================================================================

    async def apply_checkout_completed(self, checkout: Mapping[str, Any]) -> bool:
        """Link the Stripe customer and subscription ids to the user."""
        metadata = checkout.get("metadata") or {}
        user_id = metadata.get("user_id")
        if not user_id:
            logger.error("Checkout completed without user_id in metadata")
            return False

        row = await self._private_repo.get_or_create(user_id, for_update=True)
        row.stripe_customer_id = checkout.get("customer") or row.stripe_customer_id
        row.stripe_subscription_id = checkout.get("subscription") or row.stripe_subscription_id
        self._session.add(row)
        await self._session.commit()
        logger.info(f"Checkout completed for user {user_id}")
        return True

    async def apply_provider_subscription(self, data: Mapping[str, Any]) -> bool:
        """
        Mirror a Stripe subscription object onto the user's row.

        A tier change at the period boundary clears any pending downgrade.
        Statuses other than active, trialing and past_due drop the user to free.
        """
        row = await self._row_for_provider_object(data)
        if row is None:
            logger.error(f"Could not find user for subscription {data.get('id')}")
            return False

        current = PrivateDataRepository.to_subscription(row)
        status = SubscriptionStatus.from_provider(data.get("status"))
        item = _first_item(data)
        price = item.get("price") or {}
        resolved = self._stripe.plan_for_price(price.get("id"))
        if resolved is None:
            resolved = _plan_from_metadata(data.get("metadata") or {})
        tier, interval = resolved if resolved else (current.tier, current.billing_interval)

        if status not in LIVE_STATUSES:
            tier, interval = SubscriptionTier.FREE, None

        previous_tier = current.tier
        current.stripe_customer_id = data.get("customer") or current.stripe_customer_id
        current.stripe_subscription_id = data.get("id") or current.stripe_subscription_id
        current.tier = tier
        current.status = status
        current.billing_interval = interval
        current.current_period_start = from_unix(
            data.get("current_period_start") or item.get("current_period_start")
        )
        current.current_period_end = from_unix(
            data.get("current_period_end") or item.get("current_period_end")
        )
        current.cancel_at = from_unix(data.get("cancel_at"))
        current.cancel_at_period_end = bool(data.get("cancel_at_period_end")) or current.cancel_at is not None

        if tier != previous_tier or status not in LIVE_STATUSES:
            current.pending_downgrade_tier = None
            current.pending_downgrade_date = None

        PrivateDataRepository.apply_subscription(row, current)
        self._session.add(row)
        await self._session.commit()

        logger.info(f"Synced subscription for user {row.user_id}: {tier.value} ({status.value})")
        await self._entitlements.publish(row.user_id)
        return True

    async def apply_subscription_deleted(self, data: Mapping[str, Any]) -> bool:
        """Drop the user to the free tier."""
        row = await self._row_for_provider_object(data)
        if row is None:
            logger.error(f"Could not find user for deleted subscription {data.get('id')}")
            return False

        PrivateDataRepository.apply_subscription(row, Subscription(
            user_id=row.user_id,
            stripe_customer_id=row.stripe_customer_id,
            tier=SubscriptionTier.FREE,
            status=SubscriptionStatus.CANCELED,
        ))
        self._session.add(row)
        await self._session.commit()

        logger.info(f"Downgraded user {row.user_id} to free tier")
        await self._entitlements.publish(row.user_id)
        return True

    async def apply_payment_failed(self, invoice: Mapping[str, Any]) -> bool:
        """Mark the subscription past due."""
        customer_id = invoice.get("customer")
        row = await self._private_repo.get_by_stripe_customer_id(customer_id) if customer_id else None
        if row is None:
            return False

        row.subscription_status = SubscriptionStatus.PAST_DUE.value
        self._session.add(row)
        await self._session.commit()

        logger.warning(f"Payment failed for customer {customer_id}, set to past_due")
        await self._entitlements.publish(row.user_id)
        return True

    async def _row_for_provider_object(self, data: Mapping[str, Any]) -> Optional[UserPrivateData]:
        user_id = (data.get("metadata") or {}).get("user_id")
        if user_id:
            return await self._private_repo.get_or_create(user_id, for_update=True)
        subscription_id = data.get("id")
        if subscription_id:
            row = await self._private_repo.get_by_stripe_subscription_id(subscription_id)
            if row is not None:
                return row
        customer_id = data.get("customer")
        if customer_id:
            return await self._private_repo.get_by_stripe_customer_id(customer_id)
        return None


def _first_item(data: Mapping[str, Any]) -> Mapping[str, Any]:
    items = (data.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _plan_from_metadata(metadata: Mapping[str, Any]):
    try:
        return SubscriptionTier(metadata["tier"]), BillingInterval(metadata["interval"])
    except (KeyError, ValueError):
        return None
