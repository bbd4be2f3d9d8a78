from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import DuplicateEmail
from .models import TaskEntity, UserEntity, is_task_status, new_id
from .settings import Settings


@dataclass(frozen=True)
class TaskListQuery:
    """
    Filters for listing one owner's tasks.
    """
    search: Optional[str] = None
    status: Optional[str] = None  # ignored unless one of TASK_STATUSES


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Credential store contract. Emails are expected lower-cased."""

    @abstractmethod
    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        """Create and return a user. Raises DuplicateEmail if the email is taken."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserEntity]:
        """Return a user by id, or None if not found."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserEntity]:
        """Return a user by email, or None if not found."""

    @abstractmethod
    def update(self, user_id: str, name: str, email: str) -> Optional[UserEntity]:
        """
        Set name and email of an existing user. Return the updated user or None
        if not found. Raises DuplicateEmail if another user owns the email.
        """


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """
    Task store contract. Every operation is scoped to an owner: a task owned
    by someone else is indistinguishable from a missing one.
    """

    @abstractmethod
    def create(self, owner: str, title: str, description: str, status: str) -> TaskEntity:
        """Create and return a new task for owner."""

    @abstractmethod
    def get(self, owner: str, task_id: str) -> Optional[TaskEntity]:
        """Return the owner's task by id, or None."""

    @abstractmethod
    def update(self, owner: str, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        """
        Apply changes (subset of title/description/status) to the owner's task.
        Return the updated task or None if not found.
        """

    @abstractmethod
    def delete(self, owner: str, task_id: str) -> bool:
        """Delete the owner's task. Return True if deleted, False if not found."""

    @abstractmethod
    def list(self, owner: str, query: Optional[TaskListQuery] = None) -> List[TaskEntity]:
        """
        Return the owner's tasks, newest first.
        - Filter by status (exact match; unknown values are ignored)
        - Substring search across title and description (case-insensitive)
        """


_UPDATABLE_TASK_FIELDS = ("title", "description", "status")


class InMemoryUserRepository(UserRepository):
    """
    Thread-safe in-memory credential store.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, UserEntity] = {}

    def _find_email(self, email: str) -> Optional[UserEntity]:
        for user in self._items.values():
            if user["email"] == email:
                return user
        return None

    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        now = utcnow()
        entity: UserEntity = {
            "id": new_id(),
            "name": name,
            "email": email,
            "password_hash": password_hash,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            if self._find_email(email) is not None:
                raise DuplicateEmail()
            self._items[entity["id"]] = entity
        return entity.copy()  # type: ignore[return-value]

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._lock:
            item = self._items.get(user_id)
            return None if item is None else item.copy()  # type: ignore[return-value]

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._lock:
            item = self._find_email(email)
            return None if item is None else item.copy()  # type: ignore[return-value]

    def update(self, user_id: str, name: str, email: str) -> Optional[UserEntity]:
        with self._lock:
            existing = self._items.get(user_id)
            if existing is None:
                return None
            holder = self._find_email(email)
            if holder is not None and holder["id"] != user_id:
                raise DuplicateEmail()

            updated = existing.copy()
            updated["name"] = name
            updated["email"] = email
            updated["updated_at"] = utcnow()
            self._items[user_id] = updated  # type: ignore[assignment]
            return updated.copy()  # type: ignore[return-value]


class InMemoryTaskRepository(TaskRepository):
    """
    Thread-safe in-memory task store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}

    def _owned(self, owner: str, task_id: str) -> Optional[TaskEntity]:
        item = self._items.get(task_id)
        if item is None or item["owner"] != owner:
            return None
        return item

    def create(self, owner: str, title: str, description: str, status: str) -> TaskEntity:
        now = utcnow()
        entity: TaskEntity = {
            "id": new_id(),
            "owner": owner,
            "title": title,
            "description": description,
            "status": status,
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()  # type: ignore[return-value]

    def get(self, owner: str, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._owned(owner, task_id)
            return None if item is None else item.copy()  # type: ignore[return-value]

    def update(self, owner: str, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._owned(owner, task_id)
            if existing is None:
                return None

            # Update only provided fields
            updated = existing.copy()
            for field in _UPDATABLE_TASK_FIELDS:
                if field in changes:
                    updated[field] = changes[field]  # type: ignore[literal-required]
            updated["updated_at"] = utcnow()

            self._items[task_id] = updated  # type: ignore[assignment]
            return updated.copy()  # type: ignore[return-value]

    def delete(self, owner: str, task_id: str) -> bool:
        with self._lock:
            if self._owned(owner, task_id) is None:
                return False
            del self._items[task_id]
            return True

    def list(self, owner: str, query: Optional[TaskListQuery] = None) -> List[TaskEntity]:
        q = query or TaskListQuery()
        with self._lock:
            # Reverse insertion order so ties on created_at stay newest first
            items = [t for t in reversed(list(self._items.values())) if t["owner"] == owner]

            if is_task_status(q.status):
                items = [t for t in items if t["status"] == q.status]

            if q.search:
                s = q.search.lower()
                items = [
                    t for t in items
                    if s in t["title"].lower() or s in (t["description"] or "").lower()
                ]

            items_sorted = sorted(items, key=lambda t: t["created_at"], reverse=True)

            # Return copies to avoid external mutation
            return [t.copy() for t in items_sorted]  # type: ignore[misc]


# PUBLIC_INTERFACE
def build_repositories(settings: Settings) -> Tuple[UserRepository, TaskRepository]:
    """
    Return the user and task repositories for the configured backend.
    - memory: InMemoryUserRepository / InMemoryTaskRepository
    - sqlite: SQLiteUserRepository / SQLiteTaskRepository sharing one database file
    """
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTaskRepository, SQLiteUserRepository

        return SQLiteUserRepository(settings.sqlite_db_path), SQLiteTaskRepository(settings.sqlite_db_path)
    return InMemoryUserRepository(), InMemoryTaskRepository()
