"""
Repository Layer for Gylde

Exports all repository classes for dependency injection.
"""

from gylde.infrastructure.db.repositories.base_repository import BaseRepository
from gylde.infrastructure.db.repositories.private_data_repository import (
    PrivateDataRepository,
)
from gylde.infrastructure.db.repositories.private_access_repository import (
    PrivateAccessRepository,
)
from gylde.infrastructure.db.repositories.photo_repository import PhotoRepository
from gylde.infrastructure.db.repositories.webhook_event_repository import (
    WebhookEventRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    # Repositories
    "PrivateDataRepository",
    "PrivateAccessRepository",
    "PhotoRepository",
    "WebhookEventRepository",
]
