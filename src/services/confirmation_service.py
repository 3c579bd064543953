"""Assignment confirmation: single-use tokens and the accept/reject state machine.

An assignment starts ``pending`` and moves once, to ``accepted`` or
``rejected``. Replaying the recorded response succeeds without side effects;
the opposite response is a conflict. Transitions use conditional updates so
concurrent clicks on the same link resolve to exactly one winner. State is
persisted before any notification is attempted, and notification failures
never undo or fail the response.
"""

import logging
import re
import secrets
from datetime import UTC, datetime, timedelta

from src.core import db_client
from src.core.config import settings
from src.core.errors import AssignmentNotFoundError, ConflictError, InvalidTokenError, MissingReasonError
from src.core.logging import span
from src.domain.assignment import Assignment, AssignmentStatus
from src.domain.notification import Audience, NotificationEvent, NotificationKind
from src.domain.task import Task, TaskStatus
from src.domain.user import User
from src.models.service_models import ChannelResult, ConfirmationResult
from src.services import activity_log_service, directory_service, dispatch_service
from src.services.activity_log_service import ActivityAction


logger = logging.getLogger(__name__)

# Alphabet of secrets.token_urlsafe
TOKEN_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,128}")


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def confirmation_urls(task_id: str, token: str) -> tuple[str, str]:
    """Accept and reject links embedded in assignment notifications."""
    base = settings.app_base_url.rstrip("/")
    return (
        f"{base}/tasks/{task_id}/accept?token={token}",
        f"{base}/tasks/{task_id}/reject?token={token}",
    )


async def assign_task(*, task_id: str, user_id: str, assigned_by: str | None = None) -> Assignment:
    """Assign a user to a task and send them accept/reject links.

    Re-assigning an existing assignee issues a fresh token and resets the
    assignment to ``pending``.

    Raises:
        EntityNotFoundError: If the task or the user does not exist
    """
    with span("confirmation_service.assign_task"):
        task = await directory_service.get_task(task_id)
        assignee = await directory_service.get_user(user_id)

        now = datetime.now(UTC)
        data = {
            "status": AssignmentStatus.PENDING,
            "confirmation_token": generate_token(),
            "token_expires_at": now + timedelta(hours=settings.confirmation_token_ttl_hours),
            "assigned_by": assigned_by,
            "assigned_at": now,
            "responded_at": None,
            "response_reason": None,
        }

        existing = await db_client.get_first_record_by(collection="task_assignees", task_id=task_id, user_id=user_id)
        if existing:
            record = await db_client.update_record(collection="task_assignees", record_id=existing["id"], data=data)
        else:
            record = await db_client.create_record(
                collection="task_assignees", data={"task_id": task_id, "user_id": user_id, **data}
            )
        assignment = Assignment(**record)

        await activity_log_service.log_activity(
            user_id=assigned_by,
            action=ActivityAction.ASSIGNED_TASK,
            entity_type="task",
            entity_id=task_id,
            details={"assignee_id": user_id, "reassigned": existing is not None},
        )

        await _notify_assignment(task, assignee, assignment, assigned_by)
        return assignment


async def _notify_assignment(task: Task, assignee: User, assignment: Assignment, assigned_by: str | None) -> None:
    try:
        project = await directory_service.get_project(task.project_id)
        accept_url, reject_url = confirmation_urls(task.id, assignment.confirmation_token)
        actor_name = None
        if assigned_by:
            actor_name = (await directory_service.get_user(assigned_by)).name

        event = NotificationEvent(
            kind=NotificationKind.ASSIGNMENT,
            task=task,
            actor_name=actor_name,
            project_title=project.title if project else None,
            accept_url=accept_url,
            reject_url=reject_url,
        )
        await dispatch_service.notify_user(event, assignee.id)

        manager_event = event.model_copy(
            update={
                "audience": Audience.MANAGER,
                "assignee_name": assignee.name,
                "accept_url": None,
                "reject_url": None,
            }
        )
        managers = await directory_service.get_managers_and_admins()
        await dispatch_service.notify_users(
            manager_event, [manager.id for manager in managers], exclude=[assignee.id, assigned_by or ""]
        )
    except Exception as e:
        logger.error("Failed to send assignment notifications for task %s: %s", task.id, e)


async def resolve_token(task_id: str, token: str | None) -> Assignment:
    """Find the assignment that owns ``token`` for ``task_id``.

    Answered assignments keep resolving, so a replay or a contradicting
    response gets a precise answer instead of "invalid token".

    Raises:
        InvalidTokenError: If the token is missing, unknown, or expired while pending
        AssignmentNotFoundError: If the token belongs to another task
    """
    if not token:
        raise InvalidTokenError.missing()
    if not TOKEN_PATTERN.fullmatch(token):
        raise InvalidTokenError()

    record = await db_client.get_first_record_by(collection="task_assignees", confirmation_token=token)
    if record is None:
        raise InvalidTokenError()

    assignment = Assignment(**record)
    if assignment.task_id != str(task_id):
        raise AssignmentNotFoundError()

    if assignment.status == AssignmentStatus.PENDING and assignment.token_expires_at <= datetime.now(UTC):
        raise InvalidTokenError()

    return assignment


async def _transition(assignment: Assignment, target: AssignmentStatus, reason: str | None) -> Assignment | None:
    """Move a pending assignment to ``target``.

    Returns:
        The updated assignment, or None if another response was recorded first
    """
    data: dict = {"status": target, "responded_at": datetime.now(UTC)}
    if reason is not None:
        data["response_reason"] = reason
    record = await db_client.update_record_if(
        collection="task_assignees",
        record_id=assignment.id,
        data=data,
        filter_query=f'status = "{AssignmentStatus.PENDING}"',
    )
    return Assignment(**record) if record else None


async def _replay_or_conflict(task_id: str, assignment_id: str, target: AssignmentStatus) -> ConfirmationResult:
    record = await db_client.get_record(collection="task_assignees", record_id=assignment_id)
    recorded = AssignmentStatus(record["status"])
    if recorded != target:
        raise ConflictError(recorded)

    task = await directory_service.get_task(task_id)
    logger.info("Replayed %s response for task %s", target, task_id)
    return ConfirmationResult(
        task_id=task.id,
        task_title=task.title,
        task_status=task.status,
        assignment_status=recorded,
        message=_success_message(target),
        replayed=True,
    )


def _success_message(status: AssignmentStatus) -> str:
    if status == AssignmentStatus.ACCEPTED:
        return "Tâche acceptée avec succès"
    return "Tâche refusée"


async def _notify_response(
    *,
    task: Task,
    responder_id: str,
    status: AssignmentStatus,
    reason: str | None,
    broadcast: bool,
) -> list[ChannelResult]:
    """Tell the project manager (and optionally every manager/admin) about a response."""
    try:
        responder = await directory_service.get_user(responder_id)
        project = await directory_service.get_project(task.project_id)
        event = NotificationEvent(
            kind=NotificationKind.STATUS_CHANGE,
            task=task,
            audience=Audience.MANAGER,
            actor_name=responder.name,
            new_status=status,
            reason=reason,
            project_title=project.title if project else None,
        )

        user_ids: list[str] = []
        if project and project.manager_id:
            user_ids.append(project.manager_id)
        if broadcast:
            user_ids.extend(manager.id for manager in await directory_service.get_managers_and_admins())

        return await dispatch_service.notify_users(event, user_ids, exclude=[responder_id])
    except Exception as e:
        logger.error("Failed to send %s notifications for task %s: %s", status, task.id, e)
        return []


async def accept_task(*, task_id: str, token: str | None) -> ConfirmationResult:
    """Accept an assignment through its confirmation token.

    Moves the task from TODO to IN_PROGRESS; tasks already further along
    keep their status.

    Raises:
        InvalidTokenError, AssignmentNotFoundError: See resolve_token
        ConflictError: If the assignment was already rejected
    """
    with span("confirmation_service.accept_task"):
        assignment = await resolve_token(task_id, token)
        if assignment.status != AssignmentStatus.PENDING:
            return await _replay_or_conflict(assignment.task_id, assignment.id, AssignmentStatus.ACCEPTED)

        updated = await _transition(assignment, AssignmentStatus.ACCEPTED, None)
        if updated is None:
            return await _replay_or_conflict(assignment.task_id, assignment.id, AssignmentStatus.ACCEPTED)

        await db_client.update_record_if(
            collection="tasks",
            record_id=assignment.task_id,
            data={"status": TaskStatus.IN_PROGRESS, "updated": datetime.now(UTC)},
            filter_query=f'status = "{TaskStatus.TODO}"',
        )
        task = await directory_service.get_task(assignment.task_id)

        await activity_log_service.log_activity(
            user_id=assignment.user_id,
            action=ActivityAction.ACCEPTED_TASK,
            entity_type="task",
            entity_id=task.id,
            details={"task_title": task.title},
        )
        logger.info("Task accepted", extra={"task_id": task.id, "user_id": assignment.user_id})

        notifications = await _notify_response(
            task=task,
            responder_id=assignment.user_id,
            status=AssignmentStatus.ACCEPTED,
            reason=None,
            broadcast=settings.notify_admins_on_accept,
        )
        return ConfirmationResult(
            task_id=task.id,
            task_title=task.title,
            task_status=task.status,
            assignment_status=AssignmentStatus.ACCEPTED,
            message=_success_message(AssignmentStatus.ACCEPTED),
            notifications=notifications,
        )


async def reject_task(*, task_id: str, token: str | None, reason: str | None) -> ConfirmationResult:
    """Reject an assignment through its confirmation token.

    The task is forced to REJECTED and the reason is kept on the assignment
    and in the activity log.

    Raises:
        InvalidTokenError, AssignmentNotFoundError: See resolve_token
        MissingReasonError: If no reason is given
        ConflictError: If the assignment was already accepted
    """
    with span("confirmation_service.reject_task"):
        assignment = await resolve_token(task_id, token)
        reason = (reason or "").strip()
        if not reason:
            raise MissingReasonError()

        if assignment.status != AssignmentStatus.PENDING:
            return await _replay_or_conflict(assignment.task_id, assignment.id, AssignmentStatus.REJECTED)

        updated = await _transition(assignment, AssignmentStatus.REJECTED, reason)
        if updated is None:
            return await _replay_or_conflict(assignment.task_id, assignment.id, AssignmentStatus.REJECTED)

        await db_client.update_record(
            collection="tasks",
            record_id=assignment.task_id,
            data={"status": TaskStatus.REJECTED, "updated": datetime.now(UTC)},
        )
        task = await directory_service.get_task(assignment.task_id)

        await activity_log_service.log_activity(
            user_id=assignment.user_id,
            action=ActivityAction.REJECTED_TASK,
            entity_type="task",
            entity_id=task.id,
            details={"task_title": task.title, "rejection_reason": reason},
        )
        logger.info("Task rejected", extra={"task_id": task.id, "user_id": assignment.user_id})

        notifications = await _notify_response(
            task=task,
            responder_id=assignment.user_id,
            status=AssignmentStatus.REJECTED,
            reason=reason,
            broadcast=True,
        )
        return ConfirmationResult(
            task_id=task.id,
            task_title=task.title,
            task_status=task.status,
            assignment_status=AssignmentStatus.REJECTED,
            message=_success_message(AssignmentStatus.REJECTED),
            notifications=notifications,
        )
