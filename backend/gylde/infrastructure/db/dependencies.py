"""
Dependency Injection Providers for Gylde

Provides FastAPI dependencies for database sessions and the services
built on them. Every service in one request shares the request's session.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gylde.infrastructure.db.database import get_session
from gylde.infrastructure.payments.stripe_service import StripeService, get_stripe_service
from gylde.infrastructure.services.entitlement_service import EntitlementService
from gylde.infrastructure.services.photo_service import PhotoService
from gylde.infrastructure.services.private_access_service import PrivateAccessService
from gylde.infrastructure.services.reputation_service import ReputationService
from gylde.infrastructure.services.subscription_service import SubscriptionService


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]
StripeServiceDep = Annotated[StripeService, Depends(get_stripe_service)]


def get_entitlement_service(session: SessionDep) -> EntitlementService:
    """
    Dependency provider for EntitlementService.

    Usage:
        @router.get("/entitlements/me")
        async def my_entitlements(service: EntitlementServiceDep):
            ...
    """
    return EntitlementService(session)


EntitlementServiceDep = Annotated[EntitlementService, Depends(get_entitlement_service)]


def get_private_access_service(session: SessionDep) -> PrivateAccessService:
    return PrivateAccessService(session)


def get_photo_service(session: SessionDep, entitlements: EntitlementServiceDep) -> PhotoService:
    return PhotoService(session, entitlements=entitlements)


def get_reputation_service(session: SessionDep, entitlements: EntitlementServiceDep) -> ReputationService:
    return ReputationService(session, entitlements=entitlements)


def get_subscription_service(
    session: SessionDep,
    stripe_service: StripeServiceDep,
    entitlements: EntitlementServiceDep,
) -> SubscriptionService:
    return SubscriptionService(session, stripe_service, entitlements=entitlements)


# Type aliases for service dependencies
PrivateAccessServiceDep = Annotated[PrivateAccessService, Depends(get_private_access_service)]
PhotoServiceDep = Annotated[PhotoService, Depends(get_photo_service)]
ReputationServiceDep = Annotated[ReputationService, Depends(get_reputation_service)]
SubscriptionServiceDep = Annotated[SubscriptionService, Depends(get_subscription_service)]
