"""Tests for task assignment confirmation (accept/reject through tokens)."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from src.core import db_client
from src.core.config import settings
from src.core.errors import (
    AssignmentNotFoundError,
    ConflictError,
    ErrorCode,
    InvalidTokenError,
    MissingReasonError,
)
from src.domain.assignment import AssignmentStatus
from src.domain.notification import Channel
from src.domain.task import TaskStatus
from src.models.service_models import ChannelOutcome
from src.services import activity_log_service, confirmation_service
from tests.unit.mocks import FakeSender, create_assignment, create_project, create_task, create_user


@pytest.fixture
async def setup(db, fake_senders) -> dict:
    """A project with a manager, a TODO task and a pending assignment."""
    manager = await create_user(name="Marc", email="marc@example.com", phone="+33600000001", role="manager")
    project = await create_project(title="Refonte", manager_id=manager["id"])
    task = await create_task(project_id=project["id"])
    member = await create_user(name="Alice", email="alice@example.com", phone=None)
    assignment = await create_assignment(task_id=task["id"], user_id=member["id"], token="tok-abc")
    return {"manager": manager, "project": project, "task": task, "member": member, "assignment": assignment}


async def _task_status(task_id: str) -> str:
    return (await db_client.get_record(collection="tasks", record_id=task_id))["status"]


async def _assignment(assignment_id: str) -> dict:
    return await db_client.get_record(collection="task_assignees", record_id=assignment_id)


@pytest.mark.unit
class TestAssignTask:
    async def test_assignment_issues_token_and_notifies(self, db, fake_senders) -> None:
        manager = await create_user(name="Marc", email="marc@example.com", phone=None, role="manager")
        task = await create_task()
        member = await create_user(name="Alice", email="alice@example.com", phone=None)

        assignment = await confirmation_service.assign_task(
            task_id=task["id"], user_id=member["id"], assigned_by=manager["id"]
        )

        assert assignment.status == AssignmentStatus.PENDING
        assert len(assignment.confirmation_token) >= 32
        assert assignment.token_expires_at > datetime.now(UTC) + timedelta(hours=23)

        # Assignee gets the links, the assigning manager is excluded from the copy
        sent = fake_senders[Channel.EMAIL].sent
        assert [to for to, _ in sent] == ["alice@example.com"]
        accept_url = f"{settings.app_base_url}/tasks/{task['id']}/accept?token={assignment.confirmation_token}"
        assert accept_url in sent[0][1].text
        assert "Nouvelle tâche assignée" in sent[0][1].subject

    async def test_managers_get_a_copy_without_links(self, db, fake_senders) -> None:
        await create_user(name="Ada", email="ada@example.com", phone=None, role="admin")
        task = await create_task()
        member = await create_user(name="Alice", email="alice@example.com", phone=None)

        await confirmation_service.assign_task(task_id=task["id"], user_id=member["id"])

        sent = dict(fake_senders[Channel.EMAIL].sent)
        assert "Alice a été assigné(e)" in sent["ada@example.com"].subject
        assert "accept?token=" not in sent["ada@example.com"].text

    async def test_reassignment_resets_to_pending_with_new_token(self, setup) -> None:
        await confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc")

        assignment = await confirmation_service.assign_task(task_id=setup["task"]["id"], user_id=setup["member"]["id"])

        assert assignment.id == setup["assignment"]["id"]
        assert assignment.status == AssignmentStatus.PENDING
        assert assignment.confirmation_token != "tok-abc"
        with pytest.raises(InvalidTokenError):
            await confirmation_service.resolve_token(setup["task"]["id"], "tok-abc")


@pytest.mark.unit
class TestAcceptTask:
    async def test_accept_moves_todo_to_in_progress(self, setup, fake_senders) -> None:
        result = await confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc")

        assert result.assignment_status == AssignmentStatus.ACCEPTED
        assert result.task_status == TaskStatus.IN_PROGRESS
        assert result.replayed is False
        assert await _task_status(setup["task"]["id"]) == "IN_PROGRESS"
        stored = await _assignment(setup["assignment"]["id"])
        assert stored["status"] == "accepted"
        assert stored["responded_at"] is not None

        # Manager is told on every channel resolved for a status change
        assert [to for to, _ in fake_senders[Channel.EMAIL].sent] == ["marc@example.com"]
        assert len(fake_senders[Channel.SMS].sent) == 1
        assert "Alice a accepté la tâche" in fake_senders[Channel.EMAIL].sent[0][1].subject

    async def test_accept_does_not_regress_later_status(self, db, fake_senders) -> None:
        task = await create_task(status="IN_REVIEW")
        member = await create_user()
        await create_assignment(task_id=task["id"], user_id=member["id"])

        result = await confirmation_service.accept_task(task_id=task["id"], token="tok-123")

        assert result.task_status == TaskStatus.IN_REVIEW
        assert await _task_status(task["id"]) == "IN_REVIEW"

    async def test_accept_replay_is_idempotent(self, setup, fake_senders) -> None:
        await confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc")
        first_response = await _assignment(setup["assignment"]["id"])
        sent_before = len(fake_senders[Channel.EMAIL].sent)

        result = await confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc")

        assert result.replayed is True
        assert result.assignment_status == AssignmentStatus.ACCEPTED
        assert result.notifications == []
        assert await _assignment(setup["assignment"]["id"]) == first_response
        assert len(fake_senders[Channel.EMAIL].sent) == sent_before
        activity = await activity_log_service.list_activity(entity_type="task", entity_id=setup["task"]["id"])
        assert [entry["action"] for entry in activity] == ["accepted_task"]

    async def test_accept_after_reject_conflicts(self, setup) -> None:
        await confirmation_service.reject_task(task_id=setup["task"]["id"], token="tok-abc", reason="Pas le temps")

        with pytest.raises(ConflictError) as exc_info:
            await confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc")

        assert exc_info.value.code == ErrorCode.ERR_ALREADY_REJECTED
        assert exc_info.value.message == "Cette tâche a déjà été refusée. Vous ne pouvez plus l'accepter."
        assert await _task_status(setup["task"]["id"]) == "REJECTED"

    async def test_concurrent_accepts_have_one_winner(self, setup, fake_senders) -> None:
        results = await asyncio.gather(
            confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc"),
            confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc"),
        )

        assert sorted(result.replayed for result in results) == [False, True]
        assert len(fake_senders[Channel.EMAIL].sent) == 1

    async def test_channel_failure_does_not_fail_the_response(self, setup, fake_senders) -> None:
        fake_senders[Channel.EMAIL] = FakeSender(Channel.EMAIL, fail_with="HTTP 503")

        result = await confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc")

        assert result.assignment_status == AssignmentStatus.ACCEPTED
        assert [(n.channel, n.status) for n in result.notifications] == [
            (Channel.EMAIL, ChannelOutcome.FAILED),
            (Channel.SMS, ChannelOutcome.SENT),
            (Channel.WHATSAPP, ChannelOutcome.SENT),
        ]

    async def test_admins_are_told_when_enabled(self, setup, fake_senders, monkeypatch) -> None:
        monkeypatch.setattr(settings, "notify_admins_on_accept", True)
        await create_user(name="Ada", email="ada@example.com", phone=None, role="admin")

        await confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc")

        # The project manager is listed once even though they are also a manager
        assert [to for to, _ in fake_senders[Channel.EMAIL].sent] == ["marc@example.com", "ada@example.com"]


@pytest.mark.unit
class TestRejectTask:
    async def test_reject_forces_rejected_and_records_reason(self, db, fake_senders) -> None:
        task = await create_task(status="IN_PROGRESS")
        member = await create_user()
        assignment = await create_assignment(task_id=task["id"], user_id=member["id"])

        result = await confirmation_service.reject_task(task_id=task["id"], token="tok-123", reason="  En congés  ")

        assert result.task_status == TaskStatus.REJECTED
        assert result.assignment_status == AssignmentStatus.REJECTED
        assert (await _assignment(assignment["id"]))["response_reason"] == "En congés"
        activity = await activity_log_service.list_activity(entity_type="task", entity_id=task["id"])
        assert activity[-1]["action"] == "rejected_task"
        assert activity[-1]["details"]["rejection_reason"] == "En congés"

    async def test_reject_notifies_managers_with_reason(self, setup, fake_senders) -> None:
        await confirmation_service.reject_task(task_id=setup["task"]["id"], token="tok-abc", reason="Surchargée")

        to, content = fake_senders[Channel.EMAIL].sent[0]
        assert to == "marc@example.com"
        assert "Alice a refusé la tâche" in content.subject
        assert "Surchargée" in content.text

    async def test_reason_is_required(self, setup) -> None:
        with pytest.raises(MissingReasonError):
            await confirmation_service.reject_task(task_id=setup["task"]["id"], token="tok-abc", reason="   ")

        assert (await _assignment(setup["assignment"]["id"]))["status"] == "pending"

    async def test_reject_replay_is_idempotent(self, setup) -> None:
        await confirmation_service.reject_task(task_id=setup["task"]["id"], token="tok-abc", reason="Non")

        result = await confirmation_service.reject_task(task_id=setup["task"]["id"], token="tok-abc", reason="Non")

        assert result.replayed is True
        assert result.task_status == TaskStatus.REJECTED

    async def test_reject_after_accept_conflicts(self, setup) -> None:
        await confirmation_service.accept_task(task_id=setup["task"]["id"], token="tok-abc")

        with pytest.raises(ConflictError) as exc_info:
            await confirmation_service.reject_task(task_id=setup["task"]["id"], token="tok-abc", reason="Trop tard")

        assert exc_info.value.code == ErrorCode.ERR_ALREADY_ACCEPTED
        assert await _task_status(setup["task"]["id"]) == "IN_PROGRESS"


@pytest.mark.unit
class TestResolveToken:
    async def test_missing_token(self, setup) -> None:
        with pytest.raises(InvalidTokenError) as exc_info:
            await confirmation_service.accept_task(task_id=setup["task"]["id"], token=None)

        assert exc_info.value.code == ErrorCode.ERR_TOKEN_MISSING

    async def test_unknown_token(self, setup) -> None:
        with pytest.raises(InvalidTokenError) as exc_info:
            await confirmation_service.accept_task(task_id=setup["task"]["id"], token="nope")

        assert exc_info.value.code == ErrorCode.ERR_INVALID_TOKEN

    @pytest.mark.parametrize("token", ["abc'def", "abc&&def", 'tok-abc" || status = "pending', "tok abc", "x" * 200])
    async def test_malformed_token_is_invalid(self, setup, token: str) -> None:
        with pytest.raises(InvalidTokenError) as exc_info:
            await confirmation_service.accept_task(task_id=setup["task"]["id"], token=token)

        assert exc_info.value.code == ErrorCode.ERR_INVALID_TOKEN
        assert (await _assignment(setup["assignment"]["id"]))["status"] == "pending"

    async def test_token_for_another_task(self, setup) -> None:
        other = await create_task(title="Autre tâche")

        with pytest.raises(AssignmentNotFoundError):
            await confirmation_service.accept_task(task_id=other["id"], token="tok-abc")

    async def test_expired_pending_token(self, db, fake_senders) -> None:
        task = await create_task()
        member = await create_user()
        await create_assignment(
            task_id=task["id"], user_id=member["id"], expires_at=datetime.now(UTC) - timedelta(minutes=1)
        )

        with pytest.raises(InvalidTokenError):
            await confirmation_service.accept_task(task_id=task["id"], token="tok-123")

        assert await _task_status(task["id"]) == "TODO"

    async def test_answered_assignment_resolves_after_expiry(self, db, fake_senders) -> None:
        task = await create_task()
        member = await create_user()
        await create_assignment(
            task_id=task["id"],
            user_id=member["id"],
            status="accepted",
            expires_at=datetime.now(UTC) - timedelta(days=3),
        )

        result = await confirmation_service.accept_task(task_id=task["id"], token="tok-123")

        assert result.replayed is True
