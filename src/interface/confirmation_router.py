"""HTTP endpoints for task assignment and accept/reject links."""

import logging

from fastapi import APIRouter, status

from src.domain.assignment import Assignment
from src.domain.create_models import AssignmentCreate, RejectionCreate
from src.models.service_models import ConfirmationResult
from src.services import confirmation_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["confirmation"])


@router.post("/{task_id}/assignees", status_code=status.HTTP_201_CREATED)
async def post_assignment(task_id: str, body: AssignmentCreate) -> Assignment:
    """Assign a user to a task and send the confirmation links."""
    return await confirmation_service.assign_task(task_id=task_id, user_id=body.user_id, assigned_by=body.assigned_by)


@router.post("/{task_id}/accept")
async def post_accept(task_id: str, token: str | None = None) -> ConfirmationResult:
    """Accept an assignment. Safe to call again with the same token."""
    return await confirmation_service.accept_task(task_id=task_id, token=token)


@router.post("/{task_id}/reject")
async def post_reject(
    task_id: str, body: RejectionCreate | None = None, token: str | None = None
) -> ConfirmationResult:
    """Reject an assignment with a reason. Safe to call again with the same token."""
    return await confirmation_service.reject_task(task_id=task_id, token=token, reason=body.reason if body else None)
