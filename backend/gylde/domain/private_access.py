"""
Private Access Domain Models

Request/grant lifecycle types for private content and the photo DTOs.

Lifecycle per (owner, requester) pair:

    (none)  --request-->  pending
    pending --grant---->  granted   (grant + mirror written together)
    pending --deny----->  denied
    pending --cancel--->  (none)
    granted --revoke--->  (none)    (grant, mirror and request removed)
    denied  --request-->  pending   (a denial does not block new requests)
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from gylde.domain.base import ActionResult, CamelModel


class AccessRequestStatus(str, Enum):
    """Status of a private access request."""
    PENDING = "pending"
    GRANTED = "granted"
    DENIED = "denied"


class AccessResponse(str, Enum):
    """Owner's answer to a pending request."""
    GRANT = "grant"
    DENY = "deny"

    @property
    def resulting_status(self) -> AccessRequestStatus:
        if self is AccessResponse.GRANT:
            return AccessRequestStatus.GRANTED
        return AccessRequestStatus.DENIED


# =============================================================================
# Request DTOs
# =============================================================================

class TargetUserRequest(CamelModel):
    """Body for requestPrivateAccess, cancelPrivateAccessRequest and checkPrivateAccess."""
    target_user_id: str = Field(min_length=1)


class RespondRequest(CamelModel):
    """Body for respondToPrivateAccessRequest."""
    requester_id: str = Field(min_length=1)
    response: AccessResponse


class RevokeRequest(CamelModel):
    """Body for revokePrivateAccess."""
    user_id: str = Field(min_length=1)


class PhotoPrivacyRequest(CamelModel):
    """Body for togglePhotoPrivacy."""
    photo_url: str = Field(min_length=1)
    is_private: bool


class ProfilePhotoRequest(CamelModel):
    """Body for setProfilePhoto."""
    photo_url: str = Field(min_length=1)


class AddPhotoRequest(CamelModel):
    """Body for addPhoto; the URL comes from the upload pipeline."""
    photo_url: str = Field(min_length=1)
    is_private: bool = False


# =============================================================================
# Response DTOs
# =============================================================================

class AccessCheckResult(CamelModel):
    """Response for checkPrivateAccess."""
    has_access: bool
    is_self: Optional[bool] = None
    request_status: Optional[AccessRequestStatus] = None
    requested_at: Optional[datetime] = None


class BackfillResult(ActionResult):
    """Response for backfillPrivateAccess; count is rows created this run."""
    count: int


class AccessRequestView(CamelModel):
    """A request as shown to the owner."""
    requester_id: str
    requester_name: Optional[str] = None
    requester_photo: Optional[str] = None
    status: AccessRequestStatus
    requested_at: datetime
    responded_at: Optional[datetime] = None


class AccessGrantView(CamelModel):
    """A grant as shown to the owner."""
    grantee_id: str
    granted_at: datetime


class AccessReceivedView(CamelModel):
    """A grant as shown to the grantee."""
    owner_id: str
    granted_at: datetime


class PendingRequestsView(CamelModel):
    """Live view: an owner's pending requests."""
    count: int
    requests: list[AccessRequestView]


class PhotoView(CamelModel):
    """A photo as seen by a particular viewer. Withheld private photos carry no URL."""
    id: str
    url: Optional[str] = None
    is_private: bool
    order: int
    is_profile_photo: bool = False
    locked: bool = False
