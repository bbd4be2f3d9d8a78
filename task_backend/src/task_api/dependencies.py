from __future__ import annotations

from fastapi import Request

from .accounts import AccountService
from .tasks import TaskService


def get_account_service(request: Request) -> AccountService:
    """Return the AccountService built at startup."""
    return request.app.state.accounts


def get_task_service(request: Request) -> TaskService:
    """Return the TaskService built at startup."""
    return request.app.state.tasks
