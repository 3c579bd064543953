"""HTTP endpoints for explicit reminders and the delivery log."""

import logging

from fastapi import APIRouter, Query, status

from src.core.config import constants
from src.domain.create_models import ReminderCreate
from src.domain.reminder import Reminder
from src.models.service_models import DeliveryLogPage
from src.services import delivery_log_service, reminder_service


logger = logging.getLogger(__name__)

router = APIRouter(tags=["reminders"])


@router.post("/reminders", status_code=status.HTTP_201_CREATED)
async def post_reminder(body: ReminderCreate) -> Reminder:
    return await reminder_service.schedule_reminder(
        task_id=body.task_id,
        user_id=body.user_id,
        reminder_time=body.reminder_time,
        channel=body.channel,
        message=body.message,
    )


@router.get("/reminders")
async def get_reminders(user_id: str, task_id: str | None = None) -> list[Reminder]:
    return await reminder_service.list_reminders(user_id=user_id, task_id=task_id)


@router.delete("/reminders/{reminder_id}")
async def delete_reminder(reminder_id: str) -> Reminder:
    """Cancel a reminder that has not fired yet (soft delete)."""
    return await reminder_service.cancel_reminder(reminder_id)


@router.get("/delivery-logs")
async def get_delivery_logs(
    channel: str | None = None,
    status: str | None = None,
    limit: int = Query(default=constants.DELIVERY_LOG_DEFAULT_LIMIT, ge=1, le=constants.DELIVERY_LOG_MAX_LIMIT),
    offset: int = Query(default=0, ge=0),
) -> DeliveryLogPage:
    """Delivery attempts across all channels, newest first."""
    return await delivery_log_service.list_delivery_logs(channel=channel, status=status, limit=limit, offset=offset)
