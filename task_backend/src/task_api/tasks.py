"""
Owner-scoped task operations on top of a TaskRepository.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaError

from .errors import InvalidStatus, NotFound, ValidationError, validation_details
from .models import DEFAULT_TASK_STATUS, TASK_STATUSES, TaskEntity, is_task_status, is_valid_id
from .repositories import TaskListQuery, TaskRepository
from .schemas import TaskCreate, TaskOut, TaskUpdate

logger = logging.getLogger("taskmanager.tasks")

TASK_NOT_FOUND = "Task not found"


def _check_status(status: str) -> str:
    if not is_task_status(status):
        raise InvalidStatus(f"status must be one of: {', '.join(TASK_STATUSES)}")
    return status


def _to_out(task: TaskEntity) -> TaskOut:
    return TaskOut(**task)


# PUBLIC_INTERFACE
class TaskService:
    """
    CRUD on one owner's tasks. Malformed ids, missing tasks and tasks owned by
    another user all raise the same NotFound.
    """

    def __init__(self, repo: TaskRepository) -> None:
        self._repo = repo

    def create(
        self,
        owner: str,
        title: str,
        description: Optional[str] = None,
        status: Optional[str] = None,
    ) -> TaskOut:
        try:
            data = TaskCreate(title=title, description=description, status=status)
        except SchemaError as e:
            raise ValidationError(details=validation_details(e.errors())) from None
        created = self._repo.create(
            owner=owner,
            title=data.title,
            description=data.description or "",
            status=_check_status(data.status) if data.status is not None else DEFAULT_TASK_STATUS,
        )
        return _to_out(created)

    def list(self, owner: str, search: Optional[str] = None, status: Optional[str] = None) -> List[TaskOut]:
        """
        Return the owner's tasks, newest first. An unrecognized status does not
        filter; blank search text is treated as absent.
        """
        query = TaskListQuery(
            search=search.strip() if search and search.strip() else None,
            status=status if is_task_status(status) else None,
        )
        return [_to_out(t) for t in self._repo.list(owner, query)]

    def get(self, owner: str, task_id: str) -> TaskOut:
        task = self._repo.get(owner, task_id) if is_valid_id(task_id) else None
        if task is None:
            raise NotFound(TASK_NOT_FOUND)
        return _to_out(task)

    def update(self, owner: str, task_id: str, payload: TaskUpdate) -> TaskOut:
        changes: Dict[str, Any] = {}
        if payload.title is not None:
            changes["title"] = payload.title
        if payload.description is not None:
            changes["description"] = payload.description
        if payload.status is not None:
            changes["status"] = _check_status(payload.status)

        updated = self._repo.update(owner, task_id, changes) if is_valid_id(task_id) else None
        if updated is None:
            raise NotFound(TASK_NOT_FOUND)
        return _to_out(updated)

    def delete(self, owner: str, task_id: str) -> None:
        deleted = self._repo.delete(owner, task_id) if is_valid_id(task_id) else False
        if not deleted:
            raise NotFound(TASK_NOT_FOUND)
        logger.info("user %s deleted task %s", owner, task_id)
