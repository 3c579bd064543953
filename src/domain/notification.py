"""Notification events, channels and delivery records."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from src.domain.task import Task
from src.domain.user import NotificationPreferences, User


class Channel(StrEnum):
    """Delivery channel. Declaration order is the canonical dispatch order."""

    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"


class NotificationKind(StrEnum):
    ASSIGNMENT = "assignment"
    STATUS_CHANGE = "status_change"
    REMINDER = "reminder"


class Urgency(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReminderTrigger(StrEnum):
    """Due-date classification computed by the sweep."""

    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    DUE_TOMORROW = "due_tomorrow"
    NONE = "none"


TRIGGER_URGENCY = {
    ReminderTrigger.OVERDUE: Urgency.CRITICAL,
    ReminderTrigger.DUE_TODAY: Urgency.HIGH,
    ReminderTrigger.DUE_TOMORROW: Urgency.MEDIUM,
    ReminderTrigger.NONE: Urgency.LOW,
}


class Audience(StrEnum):
    """Who the notification is written for; changes wording only."""

    ASSIGNEE = "assignee"
    MANAGER = "manager"


class DeliveryStatus(StrEnum):
    SENT = "sent"
    FAILED = "failed"


class NotificationEvent(BaseModel):
    """One logical notification, rendered separately for each channel."""

    kind: NotificationKind
    task: Task
    audience: Audience = Audience.ASSIGNEE
    urgency: Urgency = Urgency.LOW
    trigger: ReminderTrigger = ReminderTrigger.NONE
    actor_name: str | None = Field(default=None, description="Who assigned, accepted or rejected")
    assignee_name: str | None = Field(default=None, description="Assignee named in manager copies")
    project_title: str | None = None
    new_status: str | None = Field(default=None, description="Assignment response for status changes")
    reason: str | None = Field(default=None, description="Rejection reason")
    message: str | None = Field(default=None, description="Free text attached to an explicit reminder")
    accept_url: str | None = None
    reject_url: str | None = None


class EmailContent(BaseModel):
    subject: str
    html: str
    text: str


class Recipient(BaseModel):
    """A user together with the preferences that decide their channels."""

    user: User
    preferences: NotificationPreferences = Field(default_factory=NotificationPreferences)

    def address_for(self, channel: Channel) -> str | None:
        if channel == Channel.EMAIL:
            return self.user.email or None
        return self.user.phone or None


class DeliveryLogEntry(BaseModel):
    """Append-only record of one channel send attempt."""

    id: str
    channel: Channel
    recipient: str
    subject: str | None = None
    content: str
    status: DeliveryStatus
    error_message: str | None = None
    provider_message_id: str | None = None
    sent_at: datetime
