"""Reminder domain models."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.notification import Channel


class Reminder(BaseModel):
    """Explicit reminder scheduled by a user for a task.

    Lifecycle: scheduled (active, not sent) -> sent, or scheduled -> cancelled.
    """

    id: str = Field(..., description="Unique reminder ID from database")
    task_id: str
    user_id: str
    reminder_time: datetime = Field(..., description="When the reminder becomes due (UTC)")
    channel: Channel
    message: str | None = None
    is_active: bool = True
    sent_at: datetime | None = Field(default=None, description="Set once, when the reminder fires")

    @property
    def is_sent(self) -> bool:
        return self.sent_at is not None

