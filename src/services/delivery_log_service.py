"""Append-only delivery log: one entry per channel send attempt."""

import logging

from src.core import db_client
from src.core.config import constants
from src.core.errors import InvalidFilterError
from src.core.logging import span
from src.domain.notification import Channel, DeliveryLogEntry, DeliveryStatus
from src.models.service_models import DeliveryLogPage, Pagination


logger = logging.getLogger(__name__)


async def record_delivery(
    *,
    channel: Channel,
    recipient: str,
    content: str,
    status: DeliveryStatus,
    subject: str | None = None,
    error_message: str | None = None,
    provider_message_id: str | None = None,
) -> DeliveryLogEntry:
    """Append one delivery log entry."""
    record = await db_client.create_record(
        collection="delivery_logs",
        data={
            "channel": channel,
            "recipient": recipient,
            "subject": subject,
            "content": content,
            "status": status,
            "error_message": error_message[: constants.ERROR_MESSAGE_MAX_LENGTH] if error_message else None,
            "provider_message_id": provider_message_id,
        },
    )
    return DeliveryLogEntry(**record)


def _build_filter(channel: str | None, status: str | None) -> str:
    clauses = []
    if channel:
        try:
            clauses.append(f'channel = "{Channel(channel)}"')
        except ValueError:
            raise InvalidFilterError(f"Canal inconnu : {channel}") from None
    if status:
        try:
            clauses.append(f'status = "{DeliveryStatus(status)}"')
        except ValueError:
            raise InvalidFilterError(f"Statut inconnu : {status}") from None
    return " && ".join(clauses)


async def list_delivery_logs(
    *,
    channel: str | None = None,
    status: str | None = None,
    limit: int = constants.DELIVERY_LOG_DEFAULT_LIMIT,
    offset: int = 0,
) -> DeliveryLogPage:
    """Return delivery log entries, newest first, with pagination metadata.

    Args:
        channel: Only entries for this channel
        status: Only ``sent`` or only ``failed`` entries
        limit: Page size, clamped to ``DELIVERY_LOG_MAX_LIMIT``
        offset: Number of entries to skip

    Raises:
        InvalidFilterError: If channel or status is not a known value
    """
    with span("delivery_log_service.list_delivery_logs"):
        filter_query = _build_filter(channel, status)
        limit = max(1, min(limit, constants.DELIVERY_LOG_MAX_LIMIT))
        offset = max(0, offset)

        total = await db_client.count_records(collection="delivery_logs", filter_query=filter_query)
        records = await db_client.list_records(
            collection="delivery_logs",
            filter_query=filter_query,
            sort="sent_at DESC, id DESC",
            per_page=limit,
            offset=offset,
        )

        return DeliveryLogPage(
            data=[DeliveryLogEntry(**record) for record in records],
            pagination=Pagination(total=total, limit=limit, offset=offset, has_more=offset + len(records) < total),
        )
