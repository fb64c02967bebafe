"""
Photo Service

Photo privacy and profile photo selection.

The current profile photo is never private: privatizing it is rejected,
and selecting a photo as the profile photo makes it public in the same
transaction. The owner's profile row is locked while either rule is checked.
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from gylde.domain.base import ActionResult
from gylde.domain.private_access import PhotoView
from gylde.infrastructure.db.models import Photo
from gylde.infrastructure.db.repositories import PhotoRepository, PrivateAccessRepository
from gylde.infrastructure.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from gylde.infrastructure.services.entitlement_service import EntitlementService


logger = logging.getLogger(__name__)

PROFILE_PHOTO_PRIVATE_MESSAGE = (
    "Profile photo cannot be made private. Change your profile photo first."
)


class PhotoService:
    """
    Service for a user's photos and their privacy flags.
    """

    def __init__(self, session: AsyncSession, entitlements: Optional[EntitlementService] = None):
        self._session = session
        self._photo_repo = PhotoRepository(session)
        self._access_repo = PrivateAccessRepository(session)
        self._entitlements = entitlements or EntitlementService(session)

    async def set_photo_privacy(self, owner_id: str, photo_url: str, is_private: bool) -> ActionResult:
        """
        Mark one of the owner's photos private or public.

        Raises:
            NotFoundError: the owner has no photo with this URL
            ValidationError: the photo is the current profile photo
        """
        # Lock order is photo, then profile, as in set_profile_photo.
        photo = await self._photo_repo.get_by_url(owner_id, photo_url, for_update=True)
        if photo is None:
            raise NotFoundError("Photo not found", table="photos")
        profile = await self._photo_repo.get_profile(owner_id, for_update=True)

        if is_private and profile is not None and profile.photo_url == photo_url:
            raise ValidationError(PROFILE_PHOTO_PRIVATE_MESSAGE, details={"photo_url": photo_url})

        label = "private" if is_private else "public"
        if photo.is_private == is_private:
            await self._session.commit()
            return ActionResult(message=f"Photo is already {label}")

        photo.is_private = is_private
        self._session.add(photo)
        await self._session.commit()

        logger.info(f"User {owner_id} set photo {photo.id} {label}")
        return ActionResult(message=f"Photo is now {label}")

    async def set_profile_photo(self, owner_id: str, photo_url: str) -> ActionResult:
        """
        Select a photo as the profile photo, making it public first.

        Raises:
            NotFoundError: the owner has no photo with this URL
        """
        photo = await self._photo_repo.get_by_url(owner_id, photo_url, for_update=True)
        if photo is None:
            raise NotFoundError("Photo not found", table="photos")
        profile = await self._photo_repo.get_or_create_profile(owner_id, for_update=True)

        was_private = photo.is_private
        photo.is_private = False
        profile.photo_url = photo_url
        self._session.add(photo)
        self._session.add(profile)
        await self._session.commit()

        if was_private:
            logger.info(f"Made photo {photo.id} public to use it as {owner_id}'s profile photo")
        return ActionResult(message="Profile photo updated")

    async def add_photo(self, owner_id: str, photo_url: str, is_private: bool = False) -> ActionResult:
        """
        Register an uploaded photo URL for the owner.

        Raises:
            PermissionDeniedError: the owner is at their photo limit
        """
        if await self._photo_repo.get_by_url(owner_id, photo_url) is not None:
            return ActionResult(message="Photo already added")

        caps = await self._entitlements.resolve(owner_id)
        current = await self._photo_repo.count_for_owner(owner_id)
        if not caps.can_add_photo(current):
            raise PermissionDeniedError(
                f"Photo limit reached ({caps.max_photos} photos)",
                feature="max_photos",
            )

        photo = Photo(
            owner_id=owner_id,
            url=photo_url,
            is_private=is_private,
            sort_order=await self._photo_repo.next_sort_order(owner_id),
        )
        await self._photo_repo.add(photo)
        await self._session.commit()

        logger.info(f"User {owner_id} added photo {photo.id} ({current + 1}/{caps.max_photos})")
        return ActionResult(message="Photo added")

    async def photos_for_viewer(self, owner_id: str, viewer_id: str) -> List[PhotoView]:
        """
        The owner's photos as the viewer may see them.

        Private photos keep their slot but lose their URL unless the viewer
        is the owner or holds a grant.
        """
        photos = await self._photo_repo.list_for_owner(owner_id)
        profile = await self._photo_repo.get_profile(owner_id)
        profile_url = profile.photo_url if profile else None

        has_access = owner_id == viewer_id
        if not has_access:
            has_access = await self._access_repo.get_grant(owner_id, viewer_id) is not None

        views = []
        for photo in photos:
            locked = photo.is_private and not has_access
            views.append(PhotoView(
                id=photo.id,
                url=None if locked else photo.url,
                is_private=photo.is_private,
                order=photo.sort_order,
                is_profile_photo=photo.url == profile_url,
                locked=locked,
            ))
        return views
