from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import require_subject
from ..dependencies import get_task_service
from ..errors import ValidationError
from ..models import TASK_STATUSES, is_valid_id
from ..schemas import OkResponse, TaskCreate, TaskEnvelope, TaskListEnvelope, TaskUpdate
from ..tasks import TaskService

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    dependencies=[Depends(require_subject)],
)


def _task_id(task_id: str) -> str:
    """
    Reject ids that could never have been issued. Only the syntax is checked,
    so this reveals nothing about which tasks exist.
    """
    if not is_valid_id(task_id):
        raise ValidationError("Invalid task id")
    return task_id


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task owned by the authenticated user.",
    responses={
        201: {"description": "Task created"},
        400: {"description": "Validation error"},
        401: {"description": "Missing or invalid token"},
    },
)
def create_task(
    payload: TaskCreate,
    subject: str = Depends(require_subject),
    service: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    task = service.create(subject, payload.title, payload.description, payload.status)
    return TaskEnvelope(task=task)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TaskListEnvelope,
    summary="List Tasks",
    description=(
        "List the authenticated user's tasks, newest first.\n\n"
        "Query parameters:\n"
        "- search: case-insensitive substring match on title or description\n"
        f"- status: one of {', '.join(TASK_STATUSES)}; any other value is ignored"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        401: {"description": "Missing or invalid token"},
    },
)
def list_tasks(
    search: Optional[str] = Query(None, description="Search text for title/description"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    subject: str = Depends(require_subject),
    service: TaskService = Depends(get_task_service),
) -> TaskListEnvelope:
    return TaskListEnvelope(tasks=service.list(subject, search=search, status=status_filter))


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskEnvelope,
    summary="Get Task",
    description="Get one of the authenticated user's tasks by ID.",
    responses={
        400: {"description": "Invalid task id"},
        401: {"description": "Missing or invalid token"},
        404: {"description": "Task not found"},
    },
)
def get_task(
    task_id: str = Depends(_task_id),
    subject: str = Depends(require_subject),
    service: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    return TaskEnvelope(task=service.get(subject, task_id))


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskEnvelope,
    summary="Update Task",
    description="Partially update a task. Omitted fields keep their current value.",
    responses={
        400: {"description": "Invalid task id or validation error"},
        401: {"description": "Missing or invalid token"},
        404: {"description": "Task not found"},
    },
)
def update_task(
    payload: TaskUpdate,
    task_id: str = Depends(_task_id),
    subject: str = Depends(require_subject),
    service: TaskService = Depends(get_task_service),
) -> TaskEnvelope:
    return TaskEnvelope(task=service.update(subject, task_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=OkResponse,
    summary="Delete Task",
    description="Permanently delete a task.",
    responses={
        400: {"description": "Invalid task id"},
        401: {"description": "Missing or invalid token"},
        404: {"description": "Task not found"},
    },
)
def delete_task(
    task_id: str = Depends(_task_id),
    subject: str = Depends(require_subject),
    service: TaskService = Depends(get_task_service),
) -> OkResponse:
    service.delete(subject, task_id)
    return OkResponse(ok=True)
