"""
Private Access Service

Owns the request -> grant/deny -> revoke lifecycle for private content.

Every operation commits at most once, so a grant, its mirror and the
request status change land together or not at all. Live views are
published after the commit.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gylde.domain.base import ActionResult
from gylde.domain.private_access import (
    AccessCheckResult,
    AccessGrantView,
    AccessReceivedView,
    AccessRequestStatus,
    AccessRequestView,
    AccessResponse,
    BackfillResult,
    PendingRequestsView,
)
from gylde.infrastructure.db.models import (
    PrivateAccessGrant,
    PrivateAccessReceived,
    PrivateAccessRequest,
)
from gylde.infrastructure.db.repositories import PhotoRepository, PrivateAccessRepository
from gylde.infrastructure.exceptions import (
    FailedPreconditionError,
    NotFoundError,
    ValidationError,
)
from gylde.infrastructure.realtime.change_feed import (
    ChangeFeed,
    get_change_feed,
    grants_topic,
    pending_requests_topic,
    received_topic,
)
from gylde.utils.datetime import utc_now


logger = logging.getLogger(__name__)


class PrivateAccessService:
    """
    Service for private content access between two users.

    The owner is the user whose content is protected; the requester (or
    grantee, once granted) is the user asking to see it.
    """

    def __init__(self, session: AsyncSession, feed: Optional[ChangeFeed] = None):
        self._session = session
        self._access_repo = PrivateAccessRepository(session)
        self._photo_repo = PhotoRepository(session)
        self._feed = feed or get_change_feed()

    # =========================================================================
    # Requester actions
    # =========================================================================

    async def request_access(self, requester_id: str, owner_id: str) -> ActionResult:
        """
        Ask an owner for access to their private content.

        Repeating the call while pending, or after access was granted,
        succeeds without changing anything. A denied request is reopened.

        Args:
            requester_id: Calling user
            owner_id: User whose content is requested

        Returns:
            ActionResult
        """
        if requester_id == owner_id:
            raise ValidationError("Cannot request access to your own photos")

        if await self._access_repo.get_grant(owner_id, requester_id) is not None:
            return ActionResult(message="Access already granted")

        request = await self._access_repo.get_request(owner_id, requester_id, for_update=True)
        if request is not None and request.status == AccessRequestStatus.PENDING.value:
            return ActionResult(message="Request already pending")

        profile = await self._photo_repo.get_profile(requester_id)
        if request is None:
            request = PrivateAccessRequest(owner_id=owner_id, requester_id=requester_id)
        request.status = AccessRequestStatus.PENDING.value
        request.requested_at = utc_now()
        request.responded_at = None
        request.requester_name = profile.display_name if profile else None
        request.requester_photo = profile.photo_url if profile else None
        self._session.add(request)

        try:
            await self._session.commit()
        except IntegrityError:
            # A concurrent call created the same pending request first.
            await self._session.rollback()
            logger.info(f"Concurrent access request {requester_id} -> {owner_id}")
            return ActionResult(message="Request already pending")

        logger.info(f"User {requester_id} requested private access from {owner_id}")
        await self._publish_pending(owner_id)
        return ActionResult(message="Access request sent")

    async def cancel_request(self, requester_id: str, owner_id: str) -> ActionResult:
        """
        Withdraw a pending request.

        Raises:
            NotFoundError: no request exists
            FailedPreconditionError: the request is no longer pending
        """
        request = await self._access_repo.get_request(owner_id, requester_id, for_update=True)
        if request is None:
            raise NotFoundError("No pending request found", table="private_access_requests")
        if request.status != AccessRequestStatus.PENDING.value:
            raise FailedPreconditionError(
                f"Only pending requests can be cancelled (request is {request.status})"
            )

        await self._access_repo.delete(request)
        await self._session.commit()

        logger.info(f"User {requester_id} cancelled access request to {owner_id}")
        await self._publish_pending(owner_id)
        return ActionResult(message="Access request cancelled")

    # =========================================================================
    # Owner actions
    # =========================================================================

    async def respond(
        self,
        owner_id: str,
        requester_id: str,
        response: AccessResponse,
    ) -> ActionResult:
        """
        Grant or deny a pending request.

        Granting writes the request status, the grant and the mirror in one
        commit. Repeating the same response succeeds; a repeated grant also
        restores a missing grant or mirror.

        Raises:
            NotFoundError: no request from this requester
            FailedPreconditionError: the request already holds the opposite answer
        """
        request = await self._access_repo.get_request(owner_id, requester_id, for_update=True)
        if request is None:
            raise NotFoundError("Request not found", table="private_access_requests")

        target = response.resulting_status
        if request.status == target.value:
            if response is AccessResponse.GRANT:
                created = await self._ensure_grant(owner_id, requester_id)
                await self._session.commit()
                if created:
                    await self._publish_grant_views(owner_id, requester_id)
                return ActionResult(message="Access already granted")
            return ActionResult(message="Request already denied")

        if request.status != AccessRequestStatus.PENDING.value:
            raise FailedPreconditionError(f"Request has already been {request.status}")

        request.status = target.value
        request.responded_at = utc_now()
        self._session.add(request)
        if response is AccessResponse.GRANT:
            await self._ensure_grant(owner_id, requester_id)
        await self._session.commit()

        logger.info(f"User {owner_id} {target.value} access to {requester_id}")
        await self._publish_pending(owner_id)
        if response is AccessResponse.GRANT:
            await self._publish_grant_views(owner_id, requester_id)
            return ActionResult(message="Access granted")
        return ActionResult(message="Access denied")

    async def revoke_access(self, owner_id: str, grantee_id: str) -> ActionResult:
        """
        Remove a grant, its mirror and the request behind it.

        The pair returns to having no request, so the grantee may ask again.

        Raises:
            NotFoundError: no grant exists for the pair
        """
        grant = await self._access_repo.get_grant(owner_id, grantee_id)
        mirror = await self._access_repo.get_received(grantee_id, owner_id)
        if grant is None and mirror is None:
            raise NotFoundError("Access grant not found", table="private_access_grants")

        request = await self._access_repo.get_request(owner_id, grantee_id, for_update=True)
        for row in (grant, mirror, request):
            if row is not None:
                await self._session.delete(row)
        await self._session.commit()

        logger.info(f"User {owner_id} revoked access from {grantee_id}")
        await self._publish_grant_views(owner_id, grantee_id)
        return ActionResult(message="Access revoked")

    async def backfill_access(self, owner_id: str) -> BackfillResult:
        """
        Create any missing grantee-side mirror rows for the owner's grants.

        Returns:
            BackfillResult whose count is the number of rows created
        """
        created_for: List[str] = []
        for grant in await self._access_repo.list_grants(owner_id):
            mirror = await self._access_repo.get_received(grant.grantee_id, owner_id)
            if mirror is None:
                self._session.add(PrivateAccessReceived(
                    grantee_id=grant.grantee_id,
                    owner_id=owner_id,
                    granted_at=grant.granted_at,
                ))
                created_for.append(grant.grantee_id)

        if created_for:
            await self._session.commit()
            logger.info(f"Backfilled {len(created_for)} access mirrors for {owner_id}")
            for grantee_id in created_for:
                await self._publish_received(grantee_id)

        count = len(created_for)
        return BackfillResult(
            message=f"Backfilled {count} access record{'s' if count != 1 else ''}",
            count=count,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def has_access(self, owner_id: str, viewer_id: str) -> bool:
        if owner_id == viewer_id:
            return True
        return await self._access_repo.get_grant(owner_id, viewer_id) is not None

    async def check_access(self, owner_id: str, viewer_id: str) -> AccessCheckResult:
        """
        Whether the viewer may see the owner's private content.

        Self-access is unconditional and ignores stored rows.
        """
        if owner_id == viewer_id:
            return AccessCheckResult(has_access=True, is_self=True)

        if await self._access_repo.get_grant(owner_id, viewer_id) is not None:
            return AccessCheckResult(has_access=True, request_status=AccessRequestStatus.GRANTED)

        request = await self._access_repo.get_request(owner_id, viewer_id)
        if request is None:
            return AccessCheckResult(has_access=False)

        return AccessCheckResult(
            has_access=False,
            request_status=AccessRequestStatus(request.status),
            requested_at=request.requested_at,
        )

    async def list_requests(
        self, owner_id: str, status: Optional[AccessRequestStatus] = None,
    ) -> List[AccessRequestView]:
        rows = await self._access_repo.list_requests(owner_id, status)
        return [AccessRequestView.model_validate(row) for row in rows]

    async def pending_requests(self, owner_id: str) -> PendingRequestsView:
        requests = await self.list_requests(owner_id, AccessRequestStatus.PENDING)
        return PendingRequestsView(count=len(requests), requests=requests)

    async def list_grants(self, owner_id: str) -> List[AccessGrantView]:
        rows = await self._access_repo.list_grants(owner_id)
        return [AccessGrantView.model_validate(row) for row in rows]

    async def list_received(self, grantee_id: str) -> List[AccessReceivedView]:
        rows = await self._access_repo.list_received(grantee_id)
        return [AccessReceivedView.model_validate(row) for row in rows]

    # =========================================================================
    # Internals
    # =========================================================================

    async def _ensure_grant(self, owner_id: str, grantee_id: str) -> bool:
        """Stage the grant and mirror rows that are missing. True if any were."""
        created = False
        granted_at = utc_now()
        if await self._access_repo.get_grant(owner_id, grantee_id) is None:
            self._session.add(PrivateAccessGrant(
                owner_id=owner_id, grantee_id=grantee_id, granted_at=granted_at,
            ))
            created = True
        if await self._access_repo.get_received(grantee_id, owner_id) is None:
            self._session.add(PrivateAccessReceived(
                grantee_id=grantee_id, owner_id=owner_id, granted_at=granted_at,
            ))
            created = True
        return created

    async def _publish_pending(self, owner_id: str) -> None:
        topic = pending_requests_topic(owner_id)
        if self._feed.has_subscribers(topic):
            await self._feed.publish(topic, await self.pending_requests(owner_id))

    async def _publish_received(self, grantee_id: str) -> None:
        topic = received_topic(grantee_id)
        if self._feed.has_subscribers(topic):
            await self._feed.publish(topic, await self.list_received(grantee_id))

    async def _publish_grant_views(self, owner_id: str, grantee_id: str) -> None:
        topic = grants_topic(owner_id)
        if self._feed.has_subscribers(topic):
            await self._feed.publish(topic, await self.list_grants(owner_id))
        await self._publish_received(grantee_id)
