"""Due-date sweep: daily reminders for tasks that are due soon or overdue.

A task is reminded at most once per calendar day (UTC). The day is claimed
by inserting a ``sweep_reminders`` row whose (task_id, sweep_day) pair is
unique; a process that loses the insert skips the task.
"""

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime, timedelta

from src.core import db_client
from src.core.config import settings
from src.core.db_client import DuplicateRecordError
from src.core.logging import span
from src.domain.notification import (
    TRIGGER_URGENCY,
    Audience,
    NotificationEvent,
    NotificationKind,
    ReminderTrigger,
    Urgency,
)
from src.domain.task import TERMINAL_STATUSES, Task
from src.models.service_models import SweepSummary
from src.services import directory_service, dispatch_service


logger = logging.getLogger(__name__)


def classify_due_date(due_date: datetime | None, today: date) -> ReminderTrigger:
    """Classify a due date relative to ``today`` by calendar day."""
    if due_date is None:
        return ReminderTrigger.NONE

    due_day = due_date.astimezone(UTC).date() if due_date.tzinfo else due_date.date()
    if due_day < today:
        return ReminderTrigger.OVERDUE
    if due_day == today:
        return ReminderTrigger.DUE_TODAY
    if due_day == today + timedelta(days=1):
        return ReminderTrigger.DUE_TOMORROW
    return ReminderTrigger.NONE


def urgency_for(trigger: ReminderTrigger) -> Urgency:
    return TRIGGER_URGENCY[trigger]


async def _claim_day(task: Task, sweep_day: str, trigger: ReminderTrigger) -> str | None:
    """Insert the (task, day) dedup row. Returns its id, or None if already claimed."""
    try:
        record = await db_client.create_record(
            collection="sweep_reminders",
            data={
                "task_id": task.id,
                "sweep_day": sweep_day,
                "reminder_type": trigger,
                "urgency": urgency_for(trigger),
            },
        )
    except DuplicateRecordError:
        return None
    return record["id"]


async def _release_day(sweep_id: str, task: Task) -> None:
    """Drop a claim whose reminder never went out, so a later run can retry the task today."""
    try:
        await db_client.delete_record(collection="sweep_reminders", record_id=sweep_id)
    except Exception as e:
        logger.error("Failed to release sweep claim %s for task %s: %s", sweep_id, task.id, e)


async def _remind_task(task: Task, trigger: ReminderTrigger) -> int:
    """Notify every current assignee (and the manager for overdue tasks); returns how many were reached.

    Only the lookups made before the first delivery can raise.
    """
    urgency = urgency_for(trigger)
    project = await directory_service.get_project(task.project_id)
    project_title = project.title if project else None

    assignments = await directory_service.get_task_assignees(task.id)
    notified = 0
    assignee_names: list[str] = []

    for assignment in assignments:
        try:
            recipient = await directory_service.get_recipient(assignment.user_id)
        except Exception as e:
            logger.warning("Skipping assignee %s of task %s: %s", assignment.user_id, task.id, e)
            continue
        assignee_names.append(recipient.user.name)
        event = NotificationEvent(
            kind=NotificationKind.REMINDER,
            task=task,
            urgency=urgency,
            trigger=trigger,
            project_title=project_title,
        )
        channels = dispatch_service.resolve_channels(recipient, event.kind, urgency)
        if not channels:
            continue
        await dispatch_service.dispatch(event, recipient, channels)
        notified += 1

    if trigger == ReminderTrigger.OVERDUE and settings.notify_manager_on_overdue and project and project.manager_id:
        manager_event = NotificationEvent(
            kind=NotificationKind.REMINDER,
            task=task,
            audience=Audience.MANAGER,
            urgency=urgency,
            trigger=trigger,
            project_title=project_title,
            assignee_name=", ".join(assignee_names) or None,
        )
        assignee_ids = {assignment.user_id for assignment in assignments}
        if project.manager_id not in assignee_ids:
            # Assignees may already have been reached; a failure here must not release the claim
            try:
                if await dispatch_service.notify_user(manager_event, project.manager_id):
                    notified += 1
            except Exception as e:
                logger.error("Failed to send overdue copy for task %s to manager: %s", task.id, e)

    return notified


async def run_due_date_sweep(
    *,
    now: datetime | None = None,
    stop_requested: Callable[[], bool] | None = None,
) -> SweepSummary:
    """Send the day's due-date reminders.

    Every non-terminal task with a due date is classified; tasks due
    tomorrow, today or in the past get one reminder per day. Each task is
    processed in isolation, and a stop request ends the sweep after the
    current task (remaining tasks are picked up by the next run).
    """
    now = now or datetime.now(UTC)
    today = now.astimezone(UTC).date()
    sweep_day = today.isoformat()
    summary = SweepSummary()

    with span("due_date_sweep.run_due_date_sweep"):
        status_filter = " && ".join(f'status != "{status}"' for status in sorted(TERMINAL_STATUSES))
        records = await db_client.list_all_records(
            collection="tasks",
            filter_query=f"due_date != null && {status_filter}",
            sort="due_date ASC",
        )

        for record in records:
            if stop_requested and stop_requested():
                summary.interrupted = True
                logger.info("Stop requested, sweep interrupted after %d tasks", summary.examined)
                break

            summary.examined += 1
            try:
                task = Task(**record)
                trigger = classify_due_date(task.due_date, today)
                if trigger == ReminderTrigger.NONE:
                    summary.not_due += 1
                    continue

                sweep_id = await _claim_day(task, sweep_day, trigger)
                if sweep_id is None:
                    summary.already_reminded += 1
                    logger.debug("Task %s already reminded on %s", task.id, sweep_day)
                    continue

                try:
                    notified = await _remind_task(task, trigger)
                except Exception:
                    await _release_day(sweep_id, task)
                    raise

                await db_client.update_record(
                    collection="sweep_reminders",
                    record_id=sweep_id,
                    data={"recipients_notified": notified, "sent_at": datetime.now(UTC)},
                )
                summary.reminded += 1
                logger.info(
                    "Sent due-date reminder",
                    extra={"task_id": task.id, "trigger": str(trigger), "recipients": notified},
                )
            except Exception as e:
                summary.errors += 1
                logger.error("Error in due-date sweep for task %s: %s", record.get("id"), e)

        logger.info(
            "Completed due-date sweep",
            extra={
                "examined": summary.examined,
                "reminded": summary.reminded,
                "already_reminded": summary.already_reminded,
                "errors": summary.errors,
            },
        )
        return summary
