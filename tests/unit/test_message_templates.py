"""Tests for channel-specific notification rendering."""

from datetime import UTC, datetime

import pytest

from src.core.config import constants
from src.core.errors import ConfigurationError
from src.core.message_templates import format_notification
from src.domain.notification import (
    Audience,
    Channel,
    EmailContent,
    NotificationEvent,
    NotificationKind,
    ReminderTrigger,
    Urgency,
)
from src.domain.task import Task, TaskPriority


@pytest.fixture
def task() -> Task:
    return Task(
        id="7",
        title="Préparer la démo",
        description="Slides et maquette",
        due_date=datetime(2026, 3, 2, 17, 30, tzinfo=UTC),
        priority=TaskPriority.HIGH,
    )


class TestEmail:
    def test_assignment_email_contains_links_and_details(self, task: Task) -> None:
        event = NotificationEvent(
            kind=NotificationKind.ASSIGNMENT,
            task=task,
            project_title="Refonte",
            accept_url="https://app/tasks/7/accept?token=abc",
            reject_url="https://app/tasks/7/reject?token=abc",
        )

        content = format_notification(event, Channel.EMAIL)

        assert isinstance(content, EmailContent)
        assert "Nouvelle tâche assignée" in content.subject
        assert "Préparer la démo" in content.subject
        assert "https://app/tasks/7/accept?token=abc" in content.html
        assert "https://app/tasks/7/reject?token=abc" in content.text
        assert "02/03/2026 17:30" in content.text
        assert "Haute" in content.text
        assert "Refonte" in content.html

    def test_html_escapes_task_content(self, task: Task) -> None:
        event = NotificationEvent(
            kind=NotificationKind.REMINDER,
            task=task.model_copy(update={"title": "<script>alert(1)</script>"}),
        )

        content = format_notification(event, Channel.EMAIL)

        assert "<script>" not in content.html
        assert "&lt;script&gt;" in content.html

    def test_urgency_changes_presentation(self, task: Task) -> None:
        base = {"kind": NotificationKind.REMINDER, "task": task}
        critical = format_notification(
            NotificationEvent(urgency=Urgency.CRITICAL, trigger=ReminderTrigger.OVERDUE, **base), Channel.EMAIL
        )
        medium = format_notification(
            NotificationEvent(urgency=Urgency.MEDIUM, trigger=ReminderTrigger.DUE_TOMORROW, **base), Channel.EMAIL
        )

        assert "#dc2626" in critical.html
        assert "est en retard" in critical.subject
        assert "#ca8a04" in medium.html
        assert "demain" in medium.subject

    def test_rejection_notice_includes_reason(self, task: Task) -> None:
        event = NotificationEvent(
            kind=NotificationKind.STATUS_CHANGE,
            task=task,
            audience=Audience.MANAGER,
            actor_name="Bruno",
            new_status="rejected",
            reason="Déjà surchargé",
        )

        content = format_notification(event, Channel.EMAIL)

        assert "Bruno a refusé la tâche" in content.subject
        assert "Déjà surchargé" in content.text


class TestShortChannels:
    def test_sms_is_bounded(self, task: Task) -> None:
        event = NotificationEvent(kind=NotificationKind.REMINDER, task=task, message="x" * 1000)

        text = format_notification(event, Channel.SMS)

        assert isinstance(text, str)
        assert len(text) <= constants.SMS_MAX_LENGTH
        assert text.endswith("…")

    def test_sms_keeps_links_whole_when_truncating(self, task: Task) -> None:
        event = NotificationEvent(
            kind=NotificationKind.ASSIGNMENT,
            task=task.model_copy(update={"title": "T" * 400}),
            accept_url="https://app/tasks/7/accept?token=abc",
        )

        text = format_notification(event, Channel.SMS)

        assert len(text) <= constants.SMS_MAX_LENGTH
        assert text.endswith("https://app/tasks/7/accept?token=abc")

    def test_whatsapp_uses_bold_headline(self, task: Task) -> None:
        event = NotificationEvent(
            kind=NotificationKind.STATUS_CHANGE, task=task, actor_name="Chloé", new_status="accepted"
        )

        text = format_notification(event, Channel.WHATSAPP)

        assert text.splitlines()[0].endswith("*Chloé a accepté la tâche « Préparer la démo »*")
        assert len(text) <= constants.WHATSAPP_MAX_LENGTH

    def test_rendering_is_deterministic(self, task: Task) -> None:
        event = NotificationEvent(kind=NotificationKind.REMINDER, task=task, trigger=ReminderTrigger.DUE_TODAY)

        assert format_notification(event, "whatsapp") == format_notification(event, Channel.WHATSAPP)


def test_unknown_channel_raises_configuration_error(task: Task) -> None:
    event = NotificationEvent(kind=NotificationKind.REMINDER, task=task)

    with pytest.raises(ConfigurationError):
        format_notification(event, "pigeon")
