from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generator, List, Mapping, Optional

from .errors import DuplicateEmail
from .models import TASK_STATUSES, TaskEntity, UserEntity, is_task_status, new_id
from .repositories import TaskListQuery, TaskRepository, UserRepository, utcnow


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    name: str = "name"
    email: str = "email"
    password_hash: str = "password_hash"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


@dataclass(frozen=True)
class _TaskCols:
    table: str = "tasks"
    id: str = "id"
    owner: str = "owner"
    title: str = "title"
    description: str = "description"
    status: str = "status"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_U = _UserCols()
_T = _TaskCols()

_STATUS_SQL = ", ".join(f"'{s}'" for s in TASK_STATUSES)


def _py_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


class _SQLiteStore:
    """
    Connection handling and schema setup shared by the SQLite repositories.
    Both tables live in the same database file.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        # SQLite's lower() only folds ASCII letters
        conn.create_function("py_lower", 1, _py_lower, deterministic=True)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_U.table} (
                    {_U.id} TEXT PRIMARY KEY,
                    {_U.name} TEXT NOT NULL,
                    {_U.email} TEXT NOT NULL UNIQUE,
                    {_U.password_hash} TEXT NOT NULL,
                    {_U.created_at} TEXT NOT NULL,
                    {_U.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.table} (
                    {_T.id} TEXT PRIMARY KEY,
                    {_T.owner} TEXT NOT NULL,
                    {_T.title} TEXT NOT NULL,
                    {_T.description} TEXT NOT NULL DEFAULT '',
                    {_T.status} TEXT NOT NULL DEFAULT 'todo' CHECK ({_T.status} IN ({_STATUS_SQL})),
                    {_T.created_at} TEXT NOT NULL,
                    {_T.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_owner_created_at "
                f"ON {_T.table}({_T.owner}, {_T.created_at})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_status ON {_T.table}({_T.status})"
            )


class SQLiteUserRepository(_SQLiteStore, UserRepository):
    """
    SQLite credential store. Email uniqueness is backed by a UNIQUE constraint.
    """

    def _row_to_entity(self, row: sqlite3.Row) -> UserEntity:
        return {
            "id": str(row[_U.id]),
            "name": str(row[_U.name]),
            "email": str(row[_U.email]),
            "password_hash": str(row[_U.password_hash]),
            "created_at": datetime.fromisoformat(row[_U.created_at]),
            "updated_at": datetime.fromisoformat(row[_U.updated_at]),
        }

    def _select(self, conn: sqlite3.Connection, column: str, value: str) -> Optional[sqlite3.Row]:
        return conn.execute(f"SELECT * FROM {_U.table} WHERE {column} = ?", (value,)).fetchone()

    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        user_id = new_id()
        now = utcnow().isoformat()
        with self._conn() as conn:
            try:
                conn.execute(
                    f"""
                    INSERT INTO {_U.table} ({_U.id}, {_U.name}, {_U.email}, {_U.password_hash},
                        {_U.created_at}, {_U.updated_at})
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, name, email, password_hash, now, now),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateEmail() from e
            row = self._select(conn, _U.id, user_id)
            assert row is not None
            return self._row_to_entity(row)

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = self._select(conn, _U.id, user_id)
            return self._row_to_entity(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = self._select(conn, _U.email, email)
            return self._row_to_entity(row) if row else None

    def update(self, user_id: str, name: str, email: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            if self._select(conn, _U.id, user_id) is None:
                return None
            holder = self._select(conn, _U.email, email)
            if holder is not None and holder[_U.id] != user_id:
                raise DuplicateEmail()
            try:
                conn.execute(
                    f"""
                    UPDATE {_U.table}
                    SET {_U.name} = ?, {_U.email} = ?, {_U.updated_at} = ?
                    WHERE {_U.id} = ?
                    """,
                    (name, email, utcnow().isoformat(), user_id),
                )
            except sqlite3.IntegrityError as e:
                raise DuplicateEmail() from e
            row = self._select(conn, _U.id, user_id)
            assert row is not None
            return self._row_to_entity(row)


class SQLiteTaskRepository(_SQLiteStore, TaskRepository):
    """
    SQLite task store. Every statement filters on the owner column.
    """

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_T.id]),
            "owner": str(row[_T.owner]),
            "title": str(row[_T.title]),
            "description": row[_T.description] or "",
            "status": str(row[_T.status]),
            "created_at": datetime.fromisoformat(row[_T.created_at]),
            "updated_at": datetime.fromisoformat(row[_T.updated_at]),
        }

    def _select(self, conn: sqlite3.Connection, owner: str, task_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            f"SELECT * FROM {_T.table} WHERE {_T.id} = ? AND {_T.owner} = ?", (task_id, owner)
        ).fetchone()

    def create(self, owner: str, title: str, description: str, status: str) -> TaskEntity:
        task_id = new_id()
        now = utcnow().isoformat()
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_T.table} ({_T.id}, {_T.owner}, {_T.title}, {_T.description},
                    {_T.status}, {_T.created_at}, {_T.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (task_id, owner, title, description, status, now, now),
            )
            row = self._select(conn, owner, task_id)
            assert row is not None
            return self._row_to_entity(row)

    def get(self, owner: str, task_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = self._select(conn, owner, task_id)
            return self._row_to_entity(row) if row else None

    def update(self, owner: str, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        assignments = []
        params: List[Any] = []
        for column in (_T.title, _T.description, _T.status):
            if column in changes:
                assignments.append(f"{column} = ?")
                params.append(changes[column])
        assignments.append(f"{_T.updated_at} = ?")
        params.append(utcnow().isoformat())

        with self._conn() as conn:
            cur = conn.execute(
                f"UPDATE {_T.table} SET {', '.join(assignments)} WHERE {_T.id} = ? AND {_T.owner} = ?",
                [*params, task_id, owner],
            )
            if cur.rowcount == 0:
                return None
            row = self._select(conn, owner, task_id)
            assert row is not None
            return self._row_to_entity(row)

    def delete(self, owner: str, task_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                f"DELETE FROM {_T.table} WHERE {_T.id} = ? AND {_T.owner} = ?", (task_id, owner)
            )
            return cur.rowcount > 0

    def list(self, owner: str, query: Optional[TaskListQuery] = None) -> List[TaskEntity]:
        q = query or TaskListQuery()
        clauses = [f"{_T.owner} = ?"]
        params: List[Any] = [owner]

        if is_task_status(q.status):
            clauses.append(f"{_T.status} = ?")
            params.append(q.status)

        if q.search:
            # instr() matches the text literally, unlike LIKE with its % and _ wildcards
            clauses.append(
                f"(instr(py_lower({_T.title}), ?) > 0 OR instr(py_lower({_T.description}), ?) > 0)"
            )
            needle = q.search.lower()
            params.extend([needle, needle])

        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_T.table}
                WHERE {' AND '.join(clauses)}
                ORDER BY {_T.created_at} DESC, rowid DESC
                """,
                params,
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]
