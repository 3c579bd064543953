"""Pydantic models for service layer return types.

These models provide type safety at service boundaries, converting database
dictionaries into typed objects with validation.
"""

from enum import StrEnum

from pydantic import BaseModel, Field

from src.domain.assignment import AssignmentStatus
from src.domain.notification import Channel, DeliveryLogEntry
from src.domain.task import TaskStatus


class ChannelOutcome(StrEnum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class ChannelResult(BaseModel):
    """Outcome of one channel within a dispatch."""

    channel: Channel
    status: ChannelOutcome
    recipient_id: str | None = None
    message_id: str | None = None
    error: str | None = None


class ConfirmationResult(BaseModel):
    """Outcome of an accept or reject call."""

    task_id: str
    task_title: str
    task_status: TaskStatus
    assignment_status: AssignmentStatus
    message: str
    replayed: bool = Field(default=False, description="True when the same response had already been recorded")
    notifications: list[ChannelResult] = Field(default_factory=list)


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class DeliveryLogPage(BaseModel):
    data: list[DeliveryLogEntry]
    pagination: Pagination


class ReminderRunSummary(BaseModel):
    """Counters for one pass over pending explicit reminders."""

    due: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0


class SweepSummary(BaseModel):
    """Counters for one due-date sweep."""

    examined: int = 0
    reminded: int = 0
    already_reminded: int = 0
    not_due: int = 0
    errors: int = 0
    interrupted: bool = False
