"""Pydantic models for request bodies that create or change records."""

from datetime import datetime

from pydantic import BaseModel, Field


class ReminderCreate(BaseModel):
    """Pydantic model for scheduling an explicit reminder."""

    task_id: str = Field(..., description="Task the reminder is about")
    user_id: str = Field(..., description="User to remind")
    reminder_time: datetime = Field(..., description="When to send the reminder")
    channel: str = Field(..., description="email, sms or whatsapp")
    message: str | None = Field(default=None, description="Optional free text included in the reminder")


class AssignmentCreate(BaseModel):
    """Pydantic model for assigning a user to a task."""

    user_id: str = Field(..., description="Assignee")
    assigned_by: str | None = Field(default=None, description="User making the assignment")


class RejectionCreate(BaseModel):
    """Pydantic model for the body of a reject call."""

    reason: str | None = Field(default=None, description="Why the assignee refuses the task")
