"""Explicit, user-scheduled reminders."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from src.core import db_client
from src.core.errors import InvalidChannelError, ReminderNotFoundError, ReminderStateError
from src.core.logging import span
from src.domain.notification import Channel, NotificationEvent, NotificationKind
from src.domain.reminder import Reminder
from src.models.service_models import ChannelOutcome, ChannelResult, ReminderRunSummary
from src.services import directory_service, dispatch_service
from src.services.due_date_sweep import classify_due_date, urgency_for


logger = logging.getLogger(__name__)


def _parse_channel(channel: str) -> Channel:
    try:
        return Channel(channel)
    except ValueError:
        raise InvalidChannelError() from None


async def schedule_reminder(
    *,
    task_id: str,
    user_id: str,
    reminder_time: datetime,
    channel: str,
    message: str | None = None,
) -> Reminder:
    """Schedule a one-off reminder for a user about a task.

    Raises:
        InvalidChannelError: If channel is not email, sms or whatsapp
        EntityNotFoundError: If the task or the user does not exist
    """
    with span("reminder_service.schedule_reminder"):
        target = _parse_channel(channel)
        await directory_service.get_task(task_id)
        await directory_service.get_user(user_id)

        record = await db_client.create_record(
            collection="reminders",
            data={
                "task_id": task_id,
                "user_id": user_id,
                "reminder_time": reminder_time,
                "channel": target,
                "message": message,
                "is_active": True,
            },
        )
        logger.info(
            "Scheduled reminder",
            extra={"reminder_id": record["id"], "task_id": task_id, "user_id": user_id, "channel": str(target)},
        )
        return Reminder(**record)


async def get_reminder(reminder_id: str) -> Reminder:
    try:
        record = await db_client.get_record(collection="reminders", record_id=reminder_id)
    except KeyError:
        raise ReminderNotFoundError() from None
    return Reminder(**record)


async def cancel_reminder(reminder_id: str) -> Reminder:
    """Soft-delete a reminder that has not fired yet.

    Cancelling an already cancelled reminder is a no-op.

    Raises:
        ReminderNotFoundError: If the reminder does not exist
        ReminderStateError: If the reminder has already been sent
    """
    with span("reminder_service.cancel_reminder"):
        reminder = await get_reminder(reminder_id)
        if reminder.is_sent:
            raise ReminderStateError()
        if not reminder.is_active:
            return reminder

        record = await db_client.update_record_if(
            collection="reminders",
            record_id=reminder_id,
            data={"is_active": False},
            filter_query="sent_at = null",
        )
        if record is None:
            # Fired between the read and the update
            raise ReminderStateError()

        logger.info("Cancelled reminder", extra={"reminder_id": reminder_id})
        return Reminder(**record)


async def list_reminders(*, user_id: str, task_id: str | None = None, include_inactive: bool = False) -> list[Reminder]:
    equals = {"user_id": user_id}
    if task_id:
        equals["task_id"] = task_id
    filter_query = "" if include_inactive else 'is_active = "true"'

    records = await db_client.list_all_records(
        collection="reminders", filter_query=filter_query, sort="reminder_time ASC", equals=equals
    )
    return [Reminder(**record) for record in records]


async def _fire_reminder(reminder: Reminder, now: datetime) -> list[ChannelResult] | None:
    """Claim and dispatch one reminder.

    ``sent_at`` is written before dispatching so a reminder fires at most once,
    even if dispatch fails or another process runs the same pass.

    Returns:
        Channel results, or None if another run claimed the reminder first
    """
    claimed = await db_client.update_record_if(
        collection="reminders",
        record_id=reminder.id,
        data={"sent_at": now},
        filter_query='sent_at = null && is_active = "true"',
    )
    if claimed is None:
        return None

    task = await directory_service.get_task(reminder.task_id)
    recipient = await directory_service.get_recipient(reminder.user_id)
    trigger = classify_due_date(task.due_date, now.date())
    event = NotificationEvent(
        kind=NotificationKind.REMINDER,
        task=task,
        urgency=urgency_for(trigger),
        message=reminder.message,
    )
    return await dispatch_service.dispatch(event, recipient, [reminder.channel])


async def process_pending_reminders(
    *,
    now: datetime | None = None,
    stop_requested: Callable[[], bool] | None = None,
) -> ReminderRunSummary:
    """Fire every active reminder whose time has come, oldest first.

    Each reminder is handled in isolation: an error is logged and the pass
    continues. When ``stop_requested`` returns True the pass ends after the
    current reminder; the rest stay pending for the next run.
    """
    now = now or datetime.now(UTC)
    summary = ReminderRunSummary()

    with span("reminder_service.process_pending_reminders"):
        records = await db_client.list_all_records(
            collection="reminders",
            filter_query=(
                f'is_active = "true" && sent_at = null && '
                f'reminder_time <= "{db_client.serialize_datetime(now)}"'
            ),
            sort="reminder_time ASC",
        )
        summary.due = len(records)

        for record in records:
            if stop_requested and stop_requested():
                logger.info("Stop requested, leaving %d reminders for next run", summary.due - summary.processed)
                break
            reminder = Reminder(**record)
            try:
                results = await _fire_reminder(reminder, now)
            except Exception as e:
                summary.processed += 1
                summary.failed += 1
                logger.error("Error processing reminder %s: %s", reminder.id, e)
                continue

            summary.processed += 1
            if results is None:
                summary.skipped += 1
            elif not any(result.status == ChannelOutcome.SENT for result in results):
                summary.failed += 1

        logger.info(
            "Processed pending reminders",
            extra={"due": summary.due, "failed": summary.failed, "skipped": summary.skipped},
        )
        return summary
