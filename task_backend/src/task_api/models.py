from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Literal, Tuple, TypedDict, get_args

TaskStatus = Literal["todo", "in_progress", "done"]
TASK_STATUSES: Tuple[str, ...] = get_args(TaskStatus)
DEFAULT_TASK_STATUS: TaskStatus = "todo"

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    Stored user record.

    Fields:
    - id: Opaque 32-char hex identifier
    - name: Display name (2..80 chars, trimmed)
    - email: Lower-cased, trimmed email; unique across users
    - password_hash: bcrypt hash; never leaves the service layer
    - created_at / updated_at: UTC timestamps
    """

    id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    Stored task record.

    Fields:
    - id: Opaque 32-char hex identifier
    - owner: id of the user that created the task (immutable)
    - title: 2..120 chars, trimmed
    - description: up to 2000 chars, '' when not given
    - status: one of TASK_STATUSES
    - created_at / updated_at: UTC timestamps
    """

    id: str
    owner: str
    title: str
    description: str
    status: str
    created_at: datetime
    updated_at: datetime


def new_id() -> str:
    return uuid.uuid4().hex


def is_valid_id(value: str) -> bool:
    """Return True if value has the shape of an id produced by new_id()."""
    return bool(_ID_PATTERN.match(value or ""))


def is_task_status(value: object) -> bool:
    return isinstance(value, str) and value in TASK_STATUSES
