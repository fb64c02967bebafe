"""
ProcessedWebhookEvent SQLModel for Gylde

Idempotency ledger for billing provider webhooks.
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from gylde.utils.datetime import utc_now


class ProcessedWebhookEvent(SQLModel, table=True):
    """
    One row per provider event that has been applied.
    """

    __tablename__ = "processed_webhook_events"

    event_id: str = Field(primary_key=True, max_length=255)
    event_type: str = Field(max_length=100)
    processed_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
