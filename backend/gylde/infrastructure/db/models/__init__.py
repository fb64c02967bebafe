"""
SQLModel ORM Models for Gylde

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from gylde.infrastructure.db.models.base import TimestampMixin, new_id
from gylde.infrastructure.db.models.user_private_data import UserPrivateData
from gylde.infrastructure.db.models.private_access import (
    PrivateAccessRequest,
    PrivateAccessGrant,
    PrivateAccessReceived,
)
from gylde.infrastructure.db.models.user_profile import UserProfile, Photo
from gylde.infrastructure.db.models.webhook_event import ProcessedWebhookEvent


__all__ = [
    # Base
    "TimestampMixin",
    "new_id",
    # Private state
    "UserPrivateData",
    # Access control
    "PrivateAccessRequest",
    "PrivateAccessGrant",
    "PrivateAccessReceived",
    # Profile
    "UserProfile",
    "Photo",
    # Webhooks
    "ProcessedWebhookEvent",
]
