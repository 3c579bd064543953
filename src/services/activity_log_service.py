"""Audit trail of user actions on tasks."""

import json
import logging
from typing import Any

from src.core import db_client


logger = logging.getLogger(__name__)


class ActivityAction:
    """Action names written to the activity log."""

    ASSIGNED_TASK = "assigned_task"
    ACCEPTED_TASK = "accepted_task"
    REJECTED_TASK = "rejected_task"


async def log_activity(
    *,
    user_id: str | None,
    action: str,
    entity_type: str,
    entity_id: str,
    details: dict[str, Any] | None = None,
) -> None:
    """Append an activity entry.

    Failures are logged and swallowed: the audited action has already happened.
    """
    try:
        await db_client.create_record(
            collection="activity_logs",
            data={
                "user_id": user_id,
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "details": details or {},
            },
        )
    except Exception as e:
        logger.error(
            "Failed to write activity log",
            extra={"action": action, "entity_type": entity_type, "entity_id": entity_id, "error": str(e)},
        )


async def list_activity(*, entity_type: str, entity_id: str) -> list[dict[str, Any]]:
    """Activity entries for one entity, oldest first, with decoded details."""
    records = await db_client.list_all_records(
        collection="activity_logs",
        equals={"entity_type": entity_type, "entity_id": entity_id},
        sort="id ASC",
    )
    for record in records:
        record["details"] = json.loads(record["details"]) if record.get("details") else {}
    return records
