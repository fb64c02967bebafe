"""
Private Access Repository

Data access for access requests, grants and the grantee-side mirror.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gylde.domain.private_access import AccessRequestStatus
from gylde.infrastructure.db.models import (
    PrivateAccessGrant,
    PrivateAccessReceived,
    PrivateAccessRequest,
)
from gylde.infrastructure.db.repositories.base_repository import BaseRepository


class PrivateAccessRepository(BaseRepository[PrivateAccessRequest]):
    """
    Repository spanning the three private access tables.

    All three are keyed by a user pair, so they share one repository.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(PrivateAccessRequest, session)

    # =========================================================================
    # Requests
    # =========================================================================

    async def get_request(
        self, owner_id: str, requester_id: str, for_update: bool = False,
    ) -> Optional[PrivateAccessRequest]:
        return await self.get_by_id(
            {"owner_id": owner_id, "requester_id": requester_id}, for_update=for_update,
        )

    async def list_requests(
        self, owner_id: str, status: Optional[AccessRequestStatus] = None,
    ) -> List[PrivateAccessRequest]:
        criteria = [PrivateAccessRequest.owner_id == owner_id]
        if status is not None:
            criteria.append(PrivateAccessRequest.status == status.value)
        return await self.list_where(*criteria, order_by=PrivateAccessRequest.requested_at.desc())

    # =========================================================================
    # Grants and mirrors
    # =========================================================================

    async def get_grant(self, owner_id: str, grantee_id: str) -> Optional[PrivateAccessGrant]:
        return await self.session.get(
            PrivateAccessGrant, {"owner_id": owner_id, "grantee_id": grantee_id},
        )

    async def get_received(self, grantee_id: str, owner_id: str) -> Optional[PrivateAccessReceived]:
        return await self.session.get(
            PrivateAccessReceived, {"grantee_id": grantee_id, "owner_id": owner_id},
        )

    async def list_grants(self, owner_id: str) -> List[PrivateAccessGrant]:
        stmt = (
            select(PrivateAccessGrant)
            .where(PrivateAccessGrant.owner_id == owner_id)
            .order_by(PrivateAccessGrant.granted_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_received(self, grantee_id: str) -> List[PrivateAccessReceived]:
        stmt = (
            select(PrivateAccessReceived)
            .where(PrivateAccessReceived.grantee_id == grantee_id)
            .order_by(PrivateAccessReceived.granted_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
