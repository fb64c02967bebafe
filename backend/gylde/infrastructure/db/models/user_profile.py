"""
UserProfile and Photo SQLModels for Gylde

Only the fields access control needs: the display name and profile photo
pointer, and each user's photo list with its privacy flag.
"""

from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from gylde.infrastructure.db.models.base import TimestampMixin, new_id


class UserProfile(TimestampMixin, table=True):
    """
    Public profile table.
    """

    __tablename__ = "user_profiles"

    user_id: str = Field(primary_key=True, max_length=128)
    display_name: Optional[str] = Field(default=None, max_length=100)
    photo_url: Optional[str] = Field(
        default=None,
        max_length=1024,
        description="Current profile photo; never points at a private photo"
    )


class Photo(TimestampMixin, table=True):
    """
    A user's uploaded photo.
    """

    __tablename__ = "photos"
    __table_args__ = (
        UniqueConstraint("owner_id", "url", name="uq_photos_owner_url"),
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    owner_id: str = Field(index=True, max_length=128)
    url: str = Field(max_length=1024)
    is_private: bool = Field(default=False)
    sort_order: int = Field(default=0)
