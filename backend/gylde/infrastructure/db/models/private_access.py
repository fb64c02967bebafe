"""
Private Access SQLModels for Gylde

Request, grant and grantee-side mirror tables. Each is keyed by the user
pair; a grant and its mirror are always written in the same transaction.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from gylde.utils.datetime import utc_now


class PrivateAccessRequest(SQLModel, table=True):
    """
    A requester's ask to see an owner's private content.
    """

    __tablename__ = "private_access_requests"

    owner_id: str = Field(primary_key=True, max_length=128)
    requester_id: str = Field(primary_key=True, max_length=128, index=True)
    status: str = Field(default="pending", max_length=20, index=True)
    requested_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    responded_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Denormalised for the owner's list view
    requester_name: Optional[str] = Field(default=None, max_length=100)
    requester_photo: Optional[str] = Field(default=None, max_length=1024)


class PrivateAccessGrant(SQLModel, table=True):
    """
    Owner-side record that a grantee may view private content.
    """

    __tablename__ = "private_access_grants"

    owner_id: str = Field(primary_key=True, max_length=128)
    grantee_id: str = Field(primary_key=True, max_length=128)
    granted_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class PrivateAccessReceived(SQLModel, table=True):
    """
    Grantee-side mirror of PrivateAccessGrant.
    """

    __tablename__ = "private_access_received"

    grantee_id: str = Field(primary_key=True, max_length=128)
    owner_id: str = Field(primary_key=True, max_length=128)
    granted_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
