"""Task assignment domain models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class AssignmentStatus(StrEnum):
    """Assignee's response to an assignment.

    Only ``pending`` may transition; ``accepted`` and ``rejected`` are final.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Assignment(BaseModel):
    """Link between a task and an assignee, owning one confirmation token."""

    id: str = Field(..., description="Unique assignment ID from database")
    task_id: str = Field(..., description="Assigned task")
    user_id: str = Field(..., description="Assignee")
    status: AssignmentStatus = Field(default=AssignmentStatus.PENDING, description="Response state")
    confirmation_token: str = Field(..., description="Single-use accept/reject token")
    token_expires_at: datetime = Field(..., description="Token validity limit while pending")
    assigned_by: str | None = Field(default=None, description="User who made the assignment")
    assigned_at: datetime | None = Field(default=None, description="When the assignment was (re)issued")
    responded_at: datetime | None = Field(default=None, description="When the assignee answered")
    response_reason: str | None = Field(default=None, description="Rejection reason")
