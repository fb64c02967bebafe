"""
Base Model for SQLModel ORM

Provides common fields and behavior for all database models.
Primary keys are opaque string ids issued by the auth provider, so there
is no shared id mixin.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from gylde.utils.datetime import utc_now


def new_id() -> str:
    """Random hex identifier for rows the backend creates itself."""
    return uuid4().hex


class TimestampMixin(SQLModel):
    """
    Mixin providing timestamp fields for models.
    """

    created_at: datetime = Field(
        default_factory=utc_now,
        nullable=False,
        sa_type=DateTime(timezone=True),
        description="Record creation timestamp (UTC)"
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": utc_now},
        description="Last update timestamp (UTC)"
    )
