"""
Photo Repository

Data access for profiles (profile photo pointer) and photo privacy.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gylde.infrastructure.db.models import Photo, UserProfile
from gylde.infrastructure.db.repositories.base_repository import BaseRepository


class PhotoRepository(BaseRepository[Photo]):
    """
    Repository for the photos and user_profiles tables.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(Photo, session)

    async def get_profile(self, user_id: str, for_update: bool = False) -> Optional[UserProfile]:
        return await self.session.get(UserProfile, user_id, with_for_update=for_update or None)

    async def get_or_create_profile(self, user_id: str, for_update: bool = False) -> UserProfile:
        profile = await self.get_profile(user_id, for_update=for_update)
        if profile is None:
            profile = UserProfile(user_id=user_id)
            self.session.add(profile)
            await self.session.flush()
        return profile

    async def get_by_url(self, owner_id: str, url: str, for_update: bool = False) -> Optional[Photo]:
        stmt = select(Photo).where(Photo.owner_id == owner_id, Photo.url == url)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_for_owner(self, owner_id: str) -> List[Photo]:
        return await self.list_where(Photo.owner_id == owner_id, order_by=Photo.sort_order)

    async def count_for_owner(self, owner_id: str) -> int:
        return await self.count_where(Photo.owner_id == owner_id)

    async def next_sort_order(self, owner_id: str) -> int:
        stmt = select(func.max(Photo.sort_order)).where(Photo.owner_id == owner_id)
        result = await self.session.execute(stmt)
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1
