"""Read-only lookups of tasks, users, projects and preferences."""

import logging

from src.core import db_client
from src.core.errors import EntityNotFoundError
from src.domain.assignment import Assignment, AssignmentStatus
from src.domain.notification import Recipient
from src.domain.task import Task
from src.domain.user import NotificationPreferences, Project, User, UserRole


logger = logging.getLogger(__name__)


async def get_task(task_id: str) -> Task:
    try:
        record = await db_client.get_record(collection="tasks", record_id=task_id)
    except KeyError:
        raise EntityNotFoundError("task", task_id) from None
    return Task(**record)


async def get_user(user_id: str) -> User:
    try:
        record = await db_client.get_record(collection="users", record_id=user_id)
    except KeyError:
        raise EntityNotFoundError("user", user_id) from None
    return User(**record)


async def get_project(project_id: str | None) -> Project | None:
    """Return the project, or None when the task has none or it was deleted."""
    if not project_id:
        return None
    try:
        record = await db_client.get_record(collection="projects", record_id=project_id)
    except KeyError:
        logger.warning("Project %s not found", project_id)
        return None
    return Project(**record)


async def get_preferences(user_id: str) -> NotificationPreferences:
    """Return the user's stored preferences, or the defaults if none are stored."""
    record = await db_client.get_first_record_by(collection="notification_preferences", user_id=user_id)
    if record is None:
        return NotificationPreferences()
    return NotificationPreferences(**record)


async def get_recipient(user_id: str) -> Recipient:
    user = await get_user(user_id)
    return Recipient(user=user, preferences=await get_preferences(user_id))


async def get_managers_and_admins() -> list[User]:
    """All active users with the manager or admin role."""
    records = await db_client.list_all_records(
        collection="users",
        filter_query=f'(role = "{UserRole.ADMIN}" || role = "{UserRole.MANAGER}") && is_active = "true"',
    )
    return [User(**record) for record in records]


async def get_task_assignees(task_id: str, *, include_rejected: bool = False) -> list[Assignment]:
    """Assignments of a task; rejected ones are excluded unless asked for."""
    filter_query = "" if include_rejected else f'status != "{AssignmentStatus.REJECTED}"'
    records = await db_client.list_all_records(
        collection="task_assignees", filter_query=filter_query, equals={"task_id": task_id}
    )
    return [Assignment(**record) for record in records]
