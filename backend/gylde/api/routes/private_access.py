"""
Private Access Routes

Endpoints for the private content request/grant/revoke lifecycle.
The caller is always the authenticated user; the counterpart comes from
the request body.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter

from gylde.api.dependencies import CurrentUserId, PrivateAccessServiceDep
from gylde.domain.base import ActionResult
from gylde.domain.private_access import (
    AccessCheckResult,
    AccessGrantView,
    AccessReceivedView,
    AccessRequestStatus,
    AccessRequestView,
    BackfillResult,
    RespondRequest,
    RevokeRequest,
    TargetUserRequest,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/private-access")


# ============================================================================
# Requester
# ============================================================================

@router.post("/request", response_model=ActionResult, operation_id="requestPrivateAccess")
async def request_private_access(
    body: TargetUserRequest,
    user_id: CurrentUserId,
    service: PrivateAccessServiceDep,
):
    """Ask the target user for access to their private photos."""
    return await service.request_access(requester_id=user_id, owner_id=body.target_user_id)


@router.post("/cancel", response_model=ActionResult, operation_id="cancelPrivateAccessRequest")
async def cancel_private_access_request(
    body: TargetUserRequest,
    user_id: CurrentUserId,
    service: PrivateAccessServiceDep,
):
    """Withdraw a pending request to the target user."""
    return await service.cancel_request(requester_id=user_id, owner_id=body.target_user_id)


@router.post("/check", response_model=AccessCheckResult, operation_id="checkPrivateAccess",
             response_model_exclude_none=True)
async def check_private_access(
    body: TargetUserRequest,
    user_id: CurrentUserId,
    service: PrivateAccessServiceDep,
):
    """Whether the caller may see the target user's private photos."""
    return await service.check_access(owner_id=body.target_user_id, viewer_id=user_id)


@router.get("/received", response_model=List[AccessReceivedView])
async def list_received_access(user_id: CurrentUserId, service: PrivateAccessServiceDep):
    """Owners who have granted the caller access."""
    return await service.list_received(user_id)


# ============================================================================
# Owner
# ============================================================================

@router.post("/respond", response_model=ActionResult, operation_id="respondToPrivateAccessRequest")
async def respond_to_private_access_request(
    body: RespondRequest,
    user_id: CurrentUserId,
    service: PrivateAccessServiceDep,
):
    """Grant or deny a request made to the caller."""
    return await service.respond(
        owner_id=user_id,
        requester_id=body.requester_id,
        response=body.response,
    )


@router.post("/revoke", response_model=ActionResult, operation_id="revokePrivateAccess")
async def revoke_private_access(
    body: RevokeRequest,
    user_id: CurrentUserId,
    service: PrivateAccessServiceDep,
):
    """Withdraw access previously granted by the caller."""
    return await service.revoke_access(owner_id=user_id, grantee_id=body.user_id)


@router.post("/backfill", response_model=BackfillResult, operation_id="backfillPrivateAccess")
async def backfill_private_access(user_id: CurrentUserId, service: PrivateAccessServiceDep):
    """Repair missing grantee-side records for the caller's grants."""
    return await service.backfill_access(user_id)


@router.get("/requests", response_model=List[AccessRequestView])
async def list_access_requests(
    user_id: CurrentUserId,
    service: PrivateAccessServiceDep,
    status: Optional[AccessRequestStatus] = AccessRequestStatus.PENDING,
):
    """Requests made to the caller, pending ones by default."""
    return await service.list_requests(user_id, status)


@router.get("/grants", response_model=List[AccessGrantView])
async def list_access_grants(user_id: CurrentUserId, service: PrivateAccessServiceDep):
    """Users the caller has granted access."""
    return await service.list_grants(user_id)
