"""Tests for the delivery log query."""

import pytest

from src.core.config import constants
from src.core.errors import InvalidFilterError
from src.domain.notification import Channel, DeliveryStatus
from src.services import delivery_log_service


async def _seed(count: int, *, channel: Channel = Channel.EMAIL, status: DeliveryStatus = DeliveryStatus.SENT) -> None:
    for index in range(count):
        await delivery_log_service.record_delivery(
            channel=channel,
            recipient=f"user{index}@example.com",
            content=f"Message {index}",
            status=status,
            error_message="HTTP 500" if status == DeliveryStatus.FAILED else None,
        )


@pytest.mark.unit
class TestListDeliveryLogs:
    async def test_first_page_of_three(self, db) -> None:
        await _seed(3)

        page = await delivery_log_service.list_delivery_logs(limit=2, offset=0)

        assert len(page.data) == 2
        assert page.pagination.total == 3
        assert page.pagination.has_more is True

    async def test_last_page(self, db) -> None:
        await _seed(3)

        page = await delivery_log_service.list_delivery_logs(limit=2, offset=2)

        assert len(page.data) == 1
        assert page.pagination.has_more is False

    async def test_newest_first(self, db) -> None:
        await _seed(3)

        page = await delivery_log_service.list_delivery_logs()

        assert [entry.content for entry in page.data] == ["Message 2", "Message 1", "Message 0"]

    async def test_filters_by_channel_and_status(self, db) -> None:
        await _seed(2)
        await _seed(1, channel=Channel.SMS, status=DeliveryStatus.FAILED)

        page = await delivery_log_service.list_delivery_logs(channel="sms", status="failed")

        assert page.pagination.total == 1
        assert page.data[0].channel == Channel.SMS
        assert page.data[0].error_message == "HTTP 500"

    async def test_limit_is_clamped(self, db) -> None:
        page = await delivery_log_service.list_delivery_logs(limit=10_000)

        assert page.pagination.limit == constants.DELIVERY_LOG_MAX_LIMIT
        assert page.data == []
        assert page.pagination.has_more is False

    @pytest.mark.parametrize(("channel", "status"), [("fax", None), (None, "bounced")])
    async def test_unknown_filter_values_are_rejected(self, db, channel, status) -> None:
        with pytest.raises(InvalidFilterError):
            await delivery_log_service.list_delivery_logs(channel=channel, status=status)

    async def test_error_message_is_truncated(self, db) -> None:
        entry = await delivery_log_service.record_delivery(
            channel=Channel.WHATSAPP,
            recipient="+33612345678",
            content="Bonjour",
            status=DeliveryStatus.FAILED,
            error_message="x" * 2000,
        )

        assert len(entry.error_message) == constants.ERROR_MESSAGE_MAX_LENGTH
