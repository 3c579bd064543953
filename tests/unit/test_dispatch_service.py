"""Tests for channel resolution and multi-channel dispatch."""

import pytest

from src.core import db_client
from src.domain.notification import Channel, NotificationEvent, NotificationKind, Recipient, Urgency
from src.domain.task import Task
from src.domain.user import NotificationPreferences, User
from src.models.service_models import ChannelOutcome
from src.services import dispatch_service
from src.services.dispatch_service import resolve_channels
from tests.unit.mocks import FakeSender, create_user


def _recipient(*, email: str | None = "a@example.com", phone: str | None = "+33612345678", **prefs) -> Recipient:
    return Recipient(
        user=User(id="1", name="Alice", email=email, phone=phone),
        preferences=NotificationPreferences(**prefs),
    )


@pytest.fixture
def event() -> NotificationEvent:
    return NotificationEvent(kind=NotificationKind.REMINDER, task=Task(id="10", title="Livrer la maquette"))


class TestResolveChannels:
    def test_defaults_give_email_and_whatsapp(self) -> None:
        assert resolve_channels(_recipient(), NotificationKind.ASSIGNMENT) == {Channel.EMAIL, Channel.WHATSAPP}

    def test_sms_needs_opt_in_for_routine_events(self) -> None:
        assert Channel.SMS not in resolve_channels(_recipient(), NotificationKind.REMINDER, Urgency.MEDIUM)
        assert Channel.SMS in resolve_channels(
            _recipient(sms_notifications=True), NotificationKind.REMINDER, Urgency.LOW
        )

    def test_important_events_add_sms(self) -> None:
        assert Channel.SMS in resolve_channels(_recipient(), NotificationKind.STATUS_CHANGE)
        assert Channel.SMS in resolve_channels(_recipient(), NotificationKind.REMINDER, Urgency.CRITICAL)

    def test_email_switch_follows_event_kind(self) -> None:
        recipient = _recipient(email_task_due=False)

        assert Channel.EMAIL not in resolve_channels(recipient, NotificationKind.REMINDER)
        assert Channel.EMAIL in resolve_channels(recipient, NotificationKind.ASSIGNMENT)

    def test_missing_addresses_remove_channels(self) -> None:
        assert resolve_channels(_recipient(phone=None), NotificationKind.STATUS_CHANGE) == {Channel.EMAIL}
        assert resolve_channels(_recipient(email=None, push_notifications=False), NotificationKind.ASSIGNMENT) == set()

    def test_inactive_user_gets_nothing(self) -> None:
        recipient = _recipient()
        recipient.user.is_active = False

        assert resolve_channels(recipient, NotificationKind.STATUS_CHANGE) == set()


@pytest.mark.unit
class TestDispatch:
    async def test_partial_failure_is_isolated(self, db, fake_senders, event) -> None:
        fake_senders[Channel.EMAIL] = FakeSender(Channel.EMAIL, fail_with="HTTP 503: unavailable")

        results = await dispatch_service.dispatch(event, _recipient(), [Channel.SMS, Channel.EMAIL])

        assert [(r.channel, r.status) for r in results] == [
            (Channel.EMAIL, ChannelOutcome.FAILED),
            (Channel.SMS, ChannelOutcome.SENT),
        ]
        assert results[0].error == "HTTP 503: unavailable"
        assert len(fake_senders[Channel.SMS].sent) == 1

        entries = await db_client.list_all_records(collection="delivery_logs", sort="channel ASC")
        assert [(e["channel"], e["status"]) for e in entries] == [("email", "failed"), ("sms", "sent")]

    async def test_channel_without_address_is_skipped(self, db, fake_senders, event) -> None:
        results = await dispatch_service.dispatch(event, _recipient(phone=None), [Channel.WHATSAPP])

        assert results[0].status == ChannelOutcome.SKIPPED
        assert fake_senders[Channel.WHATSAPP].sent == []
        assert await db_client.count_records(collection="delivery_logs") == 0

    async def test_each_channel_gets_its_own_rendering(self, db, fake_senders, event) -> None:
        await dispatch_service.dispatch(event, _recipient(), list(Channel))

        email_content = fake_senders[Channel.EMAIL].sent[0][1]
        sms_content = fake_senders[Channel.SMS].sent[0][1]
        assert email_content.subject.startswith("[TaskFlow]")
        assert sms_content.startswith("TaskFlow:")


@pytest.mark.unit
class TestNotifyUsers:
    async def test_notify_user_uses_stored_preferences(self, db, fake_senders, event) -> None:
        user = await create_user(preferences={"push_notifications": False, "email_task_due": True})

        results = await dispatch_service.notify_user(event, user["id"])

        assert [r.channel for r in results] == [Channel.EMAIL]

    async def test_missing_user_yields_no_results(self, db, fake_senders, event) -> None:
        assert await dispatch_service.notify_user(event, "404") == []

    async def test_duplicates_and_excluded_users_are_skipped(self, db, fake_senders, event) -> None:
        alice = await create_user(phone=None)
        bruno = await create_user(name="Bruno", email="bruno@example.com", phone=None)

        await dispatch_service.notify_users(event, [alice["id"], bruno["id"], alice["id"]], exclude=[bruno["id"]])

        assert [to for to, _ in fake_senders[Channel.EMAIL].sent] == ["alice@example.com"]
