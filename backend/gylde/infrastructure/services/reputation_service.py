"""
Reputation Service

Recomputes reputation tiers from behavioural signals and enforces the
daily higher-tier conversation budget.

Counters roll over at UTC midnight. A counter stamped with an earlier day
reads as zero and is rewritten on the next increment; the scheduled reset
job zeroes the rest.
"""

import logging
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gylde.domain.reputation import (
    TIER_CONFIG,
    HigherTierBudget,
    ReputationStatusResponse,
    ReputationTier,
    calculate_score,
    derive_signals,
    higher_tier_budget,
    is_higher_tier,
    resolve_tier,
    score_to_tier,
)
from gylde.domain.subscription import is_premium
from gylde.infrastructure.db.repositories import PrivateDataRepository
from gylde.infrastructure.exceptions import RateLimitError, ValidationError
from gylde.infrastructure.services.entitlement_service import EntitlementService
from gylde.utils.datetime import utc_now, utc_today


logger = logging.getLogger(__name__)


class ReputationService:
    """
    Service for reputation tiers and cross-tier messaging budgets.
    """

    def __init__(self, session: AsyncSession, entitlements: Optional[EntitlementService] = None):
        self._session = session
        self._private_repo = PrivateDataRepository(session)
        self._entitlements = entitlements or EntitlementService(session)

    # =========================================================================
    # Tier calculation
    # =========================================================================

    async def refresh_reputation(self, user_id: str) -> ReputationTier:
        """
        Recalculate the user's score and tier from current signals.

        Args:
            user_id: User to recalculate

        Returns:
            The user's (possibly new) tier
        """
        row = await self._private_repo.get_or_create(user_id, for_update=True)
        now = utc_now()

        signals = derive_signals(
            PrivateDataRepository.to_message_metrics(row),
            profile_completion=row.profile_completion,
            identity_verified=row.identity_verified,
            account_created_at=row.account_created_at,
            now=now,
            blocks_received=row.blocks_received,
            reports_received=row.reports_received,
            burst_score=row.burst_score,
        )
        score = calculate_score(signals)
        tier = score_to_tier(score)

        previous = row.reputation_tier
        row.reputation_score = score
        row.reputation_tier = tier.value
        row.reputation_calculated_at = now
        self._session.add(row)
        await self._session.commit()

        if previous != tier.value:
            logger.info(f"Reputation tier for {user_id} changed {previous} -> {tier.value}")
        await self._entitlements.publish(user_id)
        return tier

    async def recalculate_all(self, batch_size: int = 50) -> Dict[str, int]:
        """
        Refresh every user's tier, one commit per user.

        A user whose refresh fails is rolled back and counted; the run
        continues with the next user.

        Returns:
            Stats dict with ``processed`` and ``failed`` counts
        """
        stats = {"processed": 0, "failed": 0}
        after: Optional[str] = None

        while True:
            user_ids = await self._private_repo.list_user_ids(after=after, limit=batch_size)
            if not user_ids:
                break
            for user_id in user_ids:
                try:
                    await self.refresh_reputation(user_id)
                    stats["processed"] += 1
                except SQLAlchemyError as e:
                    await self._session.rollback()
                    logger.error(f"Error recalculating reputation for {user_id}: {e}")
                    stats["failed"] += 1
            after = user_ids[-1]
            logger.info(f"Recalculated reputation through user {after}")

        return stats

    async def get_status(self, user_id: str, today: Optional[str] = None) -> ReputationStatusResponse:
        """The user's own tier and today's budget."""
        row = await self._private_repo.get(user_id)
        record = PrivateDataRepository.to_reputation(row)
        premium = is_premium(PrivateDataRepository.to_subscription(row)) if row else False

        return ReputationStatusResponse(
            tier=resolve_tier(record),
            budget=higher_tier_budget(record, TIER_CONFIG, premium, today or utc_today()),
        )

    # =========================================================================
    # Cross-tier budget
    # =========================================================================

    async def record_higher_tier_conversation(
        self,
        sender_id: str,
        recipient_id: str,
        today: Optional[str] = None,
    ) -> HigherTierBudget:
        """
        Count a newly started conversation against the sender's daily budget.

        Only conversations with a higher-tier recipient count, and premium
        senders are never throttled. The sender's row stays locked from the
        budget check through the increment.

        Args:
            sender_id: User opening the conversation
            recipient_id: User being messaged
            today: UTC ISO date override

        Returns:
            Budget after this conversation

        Raises:
            RateLimitError: when the sender has no budget left today
        """
        if sender_id == recipient_id:
            raise ValidationError("Cannot start a conversation with yourself")

        day = today or utc_today()
        sender_row = await self._private_repo.get_or_create(sender_id, for_update=True)
        recipient_row = await self._private_repo.get(recipient_id)

        record = PrivateDataRepository.to_reputation(sender_row)
        premium = is_premium(PrivateDataRepository.to_subscription(sender_row))
        sender_tier = resolve_tier(record)
        recipient_tier = resolve_tier(PrivateDataRepository.to_reputation(recipient_row))

        budget = higher_tier_budget(record, TIER_CONFIG, premium, day)
        if premium or not is_higher_tier(sender_tier, recipient_tier):
            await self._session.commit()
            return budget

        if not budget.is_unlimited and budget.remaining == 0:
            raise RateLimitError(
                "Daily limit for messaging higher-tier members reached",
                daily_limit=budget.daily_limit,
                used_today=budget.used_today,
            )

        sender_row.higher_tier_conversations_today = budget.used_today + 1
        sender_row.counters_as_of = day
        self._session.add(sender_row)
        await self._session.commit()

        logger.info(
            f"User {sender_id} ({sender_tier.value}) opened a conversation with "
            f"{recipient_id} ({recipient_tier.value}), used {budget.used_today + 1} today"
        )
        await self._entitlements.publish(sender_id)
        return higher_tier_budget(
            PrivateDataRepository.to_reputation(sender_row), TIER_CONFIG, False, day,
        )

    async def reset_daily_counters(self, today: Optional[str] = None) -> int:
        """
        Zero all counters stamped before ``today``.

        Returns:
            Number of rows reset; 0 when re-run on the same day
        """
        day = today or utc_today()
        count = await self._private_repo.reset_stale_counters(day)
        await self._session.commit()
        logger.info(f"Reset higher-tier conversation counters for {count} users ({day})")
        return count
