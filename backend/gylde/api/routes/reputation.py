"""
Reputation Routes

Tier recalculation and the cross-tier messaging budget.
"""

from fastapi import APIRouter

from gylde.api.dependencies import CurrentUserId, ReputationServiceDep
from gylde.domain.reputation import (
    HigherTierBudget,
    HigherTierConversationRequest,
    RefreshReputationResponse,
    ReputationStatusResponse,
)


router = APIRouter(prefix="/reputation")


@router.post("/refresh", response_model=RefreshReputationResponse, operation_id="refreshMyReputation")
async def refresh_my_reputation(user_id: CurrentUserId, service: ReputationServiceDep):
    """Recalculate the caller's reputation tier."""
    tier = await service.refresh_reputation(user_id)
    return RefreshReputationResponse(tier=tier)


@router.get("/me", response_model=ReputationStatusResponse, operation_id="getMyReputation")
async def get_my_reputation(user_id: CurrentUserId, service: ReputationServiceDep):
    """The caller's tier and today's higher-tier budget."""
    return await service.get_status(user_id)


@router.post(
    "/higher-tier-conversations",
    response_model=HigherTierBudget,
    operation_id="recordHigherTierConversation",
)
async def record_higher_tier_conversation(
    body: HigherTierConversationRequest,
    user_id: CurrentUserId,
    service: ReputationServiceDep,
):
    """
    Count a new conversation against the caller's daily budget.

    Called when the caller opens a conversation. Responds 429 when the
    budget for messaging higher-tier members is used up.
    """
    return await service.record_higher_tier_conversation(user_id, body.recipient_id)
