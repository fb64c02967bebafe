"""
Entitlement Routes

The caller's resolved capability set, and the feature check that
collaborating services (AI assistant, virtual phone) call before serving a
tier-gated request.
"""

from fastapi import APIRouter

from gylde.api.dependencies import CurrentUserId, EntitlementServiceDep
from gylde.domain.entitlements import CapabilitySet, Feature


router = APIRouter(prefix="/entitlements")


@router.get("/me", response_model=CapabilitySet, operation_id="getMyEntitlements")
async def get_my_entitlements(user_id: CurrentUserId, service: EntitlementServiceDep):
    """Capabilities from the caller's subscription and reputation tiers."""
    return await service.resolve(user_id)


@router.get("/me/features/{feature}", response_model=CapabilitySet, operation_id="requireFeature")
async def require_feature(feature: Feature, user_id: CurrentUserId, service: EntitlementServiceDep):
    """
    Capabilities if the caller's tier includes the feature.

    Answers 403 with ``details.feature`` otherwise.
    """
    return await service.require_feature(user_id, feature)
