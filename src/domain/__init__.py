"""Domain models and DTOs."""

from src.domain.assignment import Assignment, AssignmentStatus
from src.domain.notification import (
    Audience,
    Channel,
    DeliveryLogEntry,
    DeliveryStatus,
    EmailContent,
    NotificationEvent,
    NotificationKind,
    Recipient,
    ReminderTrigger,
    Urgency,
)
from src.domain.reminder import Reminder
from src.domain.task import TERMINAL_STATUSES, Task, TaskPriority, TaskStatus
from src.domain.user import NotificationPreferences, Project, User, UserRole


__all__ = [
    "TERMINAL_STATUSES",
    "Assignment",
    "AssignmentStatus",
    "Audience",
    "Channel",
    "DeliveryLogEntry",
    "DeliveryStatus",
    "EmailContent",
    "NotificationEvent",
    "NotificationKind",
    "NotificationPreferences",
    "Project",
    "Recipient",
    "Reminder",
    "ReminderTrigger",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "Urgency",
    "User",
    "UserRole",
]
