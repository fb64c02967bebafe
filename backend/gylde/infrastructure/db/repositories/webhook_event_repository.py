"""
Webhook Event Repository

DB-backed idempotency for billing provider webhooks (survives restarts).
"""

from sqlalchemy.ext.asyncio import AsyncSession

from gylde.infrastructure.db.models import ProcessedWebhookEvent
from gylde.infrastructure.db.repositories.base_repository import BaseRepository


class WebhookEventRepository(BaseRepository[ProcessedWebhookEvent]):
    """
    Repository for the processed_webhook_events table.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(ProcessedWebhookEvent, session)

    async def is_processed(self, event_id: str) -> bool:
        return await self.exists(event_id)

    async def mark_processed(self, event_id: str, event_type: str) -> None:
        if await self.exists(event_id):
            return
        await self.add(ProcessedWebhookEvent(event_id=event_id, event_type=event_type))
