"""User, project and notification preference domain models."""

from enum import StrEnum

from pydantic import BaseModel, Field


class UserRole(StrEnum):
    """User role in the organisation."""

    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"


class User(BaseModel):
    """User data transfer object."""

    id: str = Field(..., description="Unique user ID from database")
    name: str = Field(..., description="Display name of the user")
    email: str | None = Field(default=None, description="Email address, if known")
    phone: str | None = Field(default=None, description="Phone number in E.164 format, if known")
    role: UserRole = Field(default=UserRole.MEMBER, description="User role")
    is_active: bool = Field(default=True, description="Inactive users receive nothing")


class NotificationPreferences(BaseModel):
    """Per-user notification switches.

    Users without a stored row get these defaults.
    """

    email_task_assigned: bool = True
    email_task_updated: bool = True
    email_task_due: bool = True
    push_notifications: bool = True
    sms_notifications: bool = False


class Project(BaseModel):
    """Project data transfer object (read-only here)."""

    id: str = Field(..., description="Unique project ID from database")
    title: str = Field(..., description="Project title")
    manager_id: str | None = Field(default=None, description="User ID of the project manager")
