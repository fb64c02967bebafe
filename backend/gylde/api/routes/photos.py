"""
Photo Routes

Photo registration, profile photo selection and privacy flags.
"""

from typing import List

from fastapi import APIRouter

from gylde.api.dependencies import CurrentUserId, PhotoServiceDep
from gylde.domain.base import ActionResult
from gylde.domain.private_access import (
    AddPhotoRequest,
    PhotoPrivacyRequest,
    PhotoView,
    ProfilePhotoRequest,
)


router = APIRouter(prefix="/photos")


@router.post("/privacy", response_model=ActionResult, operation_id="togglePhotoPrivacy")
async def toggle_photo_privacy(
    body: PhotoPrivacyRequest,
    user_id: CurrentUserId,
    service: PhotoServiceDep,
):
    """
    Mark one of the caller's photos private or public.

    The current profile photo cannot be made private.
    """
    return await service.set_photo_privacy(user_id, body.photo_url, body.is_private)


@router.post("/profile", response_model=ActionResult, operation_id="setProfilePhoto")
async def set_profile_photo(
    body: ProfilePhotoRequest,
    user_id: CurrentUserId,
    service: PhotoServiceDep,
):
    """Use one of the caller's photos as the profile photo."""
    return await service.set_profile_photo(user_id, body.photo_url)


@router.post("", response_model=ActionResult, operation_id="addPhoto")
async def add_photo(
    body: AddPhotoRequest,
    user_id: CurrentUserId,
    service: PhotoServiceDep,
):
    """Register an uploaded photo, within the caller's photo limit."""
    return await service.add_photo(user_id, body.photo_url, body.is_private)


@router.get("/{owner_id}", response_model=List[PhotoView], operation_id="listPhotos")
async def list_photos(
    owner_id: str,
    user_id: CurrentUserId,
    service: PhotoServiceDep,
):
    """A user's photos, with private URLs withheld unless the caller has access."""
    return await service.photos_for_viewer(owner_id, user_id)
