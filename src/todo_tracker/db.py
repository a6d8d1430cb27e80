from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Generator, Iterator, List, Optional

from .clock import Clock, SystemClock
from .errors import AccountAlreadyExistsError
from .models import Account, Task
from .repositories import AccountRepository, TaskRepository, TaskSort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _TodoCols:
    table: str = "todo_items"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    completed: str = "completed"
    completed_at: str = "completed_at"
    due_date: str = "due_date"
    created_at: str = "created_at"
    owner_id: str = "user_id"
    extension_count: str = "extension_count"
    last_extended_at: str = "last_extended_at"
    original_due_date: str = "original_due_date"


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    username: str = "username"
    password: str = "password"
    created_at: str = "created_at"


_TODO = _TodoCols()
_USER = _UserCols()


def _parse_dt(s: Optional[str]) -> Optional[datetime]:
    return None if s is None else datetime.fromisoformat(s)


def _parse_date(s: Optional[str]) -> Optional[date]:
    return None if s is None else date.fromisoformat(s)


def _iso(value: Optional[date]) -> Optional[str]:
    return None if value is None else value.isoformat()


class SQLiteDatabase:
    """
    Shared SQLite file used by both the account and the todo store.

    Outside of a transaction each call opens its own short-lived connection and
    commits on exit. Inside ``transaction()`` every call made by the same thread
    reuses one connection that started with ``BEGIN IMMEDIATE``, so SQLite's
    write lock is held from the first read to the commit.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._local = threading.local()
        self._init_db()
        logger.info("SQLite database ready path=%s", db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        active: Optional[sqlite3.Connection] = getattr(self._local, "conn", None)
        if active is not None:
            yield active
            return
        conn = self._connect()
        try:
            conn.execute("BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if getattr(self._local, "conn", None) is not None:
            # Nested block joins the outer transaction.
            yield
            return
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            self._local.conn = conn
            try:
                yield
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            finally:
                self._local.conn = None
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self.connection() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_USER.table} (
                    {_USER.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_USER.username} TEXT NOT NULL UNIQUE,
                    {_USER.password} TEXT NOT NULL,
                    {_USER.created_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_TODO.table} (
                    {_TODO.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_TODO.title} TEXT NOT NULL,
                    {_TODO.description} TEXT NULL,
                    {_TODO.completed} INTEGER NOT NULL DEFAULT 0,
                    {_TODO.completed_at} TEXT NULL,
                    {_TODO.due_date} TEXT NOT NULL,
                    {_TODO.created_at} TEXT NOT NULL,
                    {_TODO.owner_id} INTEGER NOT NULL REFERENCES {_USER.table}({_USER.id}),
                    {_TODO.extension_count} INTEGER NOT NULL DEFAULT 0,
                    {_TODO.last_extended_at} TEXT NULL,
                    {_TODO.original_due_date} TEXT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_todo_user_id ON {_TODO.table}({_TODO.owner_id})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_todo_created_at ON {_TODO.table}({_TODO.created_at})"
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_todo_due_date ON {_TODO.table}({_TODO.due_date})"
            )


class SQLiteAccountRepository(AccountRepository):
    """SQLite implementation of the AccountRepository interface."""

    def __init__(self, database: SQLiteDatabase, clock: Optional[Clock] = None) -> None:
        self._db = database
        self._clock = clock or SystemClock()

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> Account:
        return Account(
            id=int(row[_USER.id]),
            username=str(row[_USER.username]),
            password_hash=str(row[_USER.password]),
            created_at=_parse_dt(row[_USER.created_at]),
        )

    def add(self, username: str, password_hash: str) -> Account:
        now = self._clock.now()
        try:
            with self._db.connection() as conn:
                cur = conn.execute(
                    f"INSERT INTO {_USER.table} ({_USER.username}, {_USER.password}, {_USER.created_at}) VALUES (?, ?, ?)",
                    (username, password_hash, now.isoformat()),
                )
                account_id = cur.lastrowid
        except sqlite3.IntegrityError as exc:
            # UNIQUE(username)
            raise AccountAlreadyExistsError.for_username(username) from exc
        return Account(username=username, password_hash=password_hash, id=account_id, created_at=now)

    def get(self, account_id: int) -> Optional[Account]:
        with self._db.connection() as conn:
            row = conn.execute(f"SELECT * FROM {_USER.table} WHERE {_USER.id} = ?", (account_id,)).fetchone()
            return self._row_to_account(row) if row else None

    def get_by_username(self, username: str) -> Optional[Account]:
        with self._db.connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {_USER.table} WHERE {_USER.username} = ?", (username,)
            ).fetchone()
            return self._row_to_account(row) if row else None

    def exists_by_username(self, username: str) -> bool:
        with self._db.connection() as conn:
            row = conn.execute(
                f"SELECT 1 FROM {_USER.table} WHERE {_USER.username} = ?", (username,)
            ).fetchone()
            return row is not None

    def delete(self, account_id: int) -> bool:
        with self._db.connection() as conn:
            cur = conn.execute(f"DELETE FROM {_USER.table} WHERE {_USER.id} = ?", (account_id,))
            return cur.rowcount > 0


class SQLiteTaskRepository(TaskRepository):
    """SQLite implementation of the TaskRepository interface."""

    def __init__(self, database: SQLiteDatabase, clock: Optional[Clock] = None) -> None:
        self._db = database
        self._clock = clock or SystemClock()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._db.transaction():
            yield

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=int(row[_TODO.id]),
            title=str(row[_TODO.title]),
            description=row[_TODO.description],
            completed=bool(row[_TODO.completed]),
            completed_at=_parse_dt(row[_TODO.completed_at]),
            due_date=_parse_date(row[_TODO.due_date]),  # type: ignore[arg-type]
            created_at=_parse_dt(row[_TODO.created_at]),
            owner_id=int(row[_TODO.owner_id]),
            extension_count=int(row[_TODO.extension_count]),
            last_extended_at=_parse_dt(row[_TODO.last_extended_at]),
            original_due_date=_parse_date(row[_TODO.original_due_date]),
        )

    def _select_one(self, conn: sqlite3.Connection, task_id: int) -> Optional[Task]:
        row = conn.execute(f"SELECT * FROM {_TODO.table} WHERE {_TODO.id} = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def add(self, task: Task) -> Task:
        now = self._clock.now()
        with self._db.connection() as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {_TODO.table} ({_TODO.title}, {_TODO.description}, {_TODO.completed},
                    {_TODO.completed_at}, {_TODO.due_date}, {_TODO.created_at}, {_TODO.owner_id},
                    {_TODO.extension_count}, {_TODO.last_extended_at}, {_TODO.original_due_date})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.title,
                    task.description,
                    1 if task.completed else 0,
                    _iso(task.completed_at),
                    _iso(task.due_date),
                    now.isoformat(),
                    task.owner_id,
                    task.extension_count,
                    _iso(task.last_extended_at),
                    _iso(task.original_due_date),
                ),
            )
            created = self._select_one(conn, int(cur.lastrowid))
            assert created is not None
            return created

    def get(self, task_id: int) -> Optional[Task]:
        with self._db.connection() as conn:
            return self._select_one(conn, task_id)

    def get_for_owner(self, task_id: int, owner_id: int) -> Optional[Task]:
        with self._db.connection() as conn:
            row = conn.execute(
                f"SELECT * FROM {_TODO.table} WHERE {_TODO.id} = ? AND {_TODO.owner_id} = ?",
                (task_id, owner_id),
            ).fetchone()
            return self._row_to_task(row) if row else None

    def exists(self, task_id: int) -> bool:
        with self._db.connection() as conn:
            row = conn.execute(f"SELECT 1 FROM {_TODO.table} WHERE {_TODO.id} = ?", (task_id,)).fetchone()
            return row is not None

    def save(self, task: Task) -> Task:
        if task.id is None:
            raise ValueError("Cannot save a todo that has not been added")
        # Owner and creation time are never written back.
        with self._db.connection() as conn:
            cur = conn.execute(
                f"""
                UPDATE {_TODO.table}
                SET {_TODO.title} = ?, {_TODO.description} = ?, {_TODO.completed} = ?,
                    {_TODO.completed_at} = ?, {_TODO.due_date} = ?, {_TODO.extension_count} = ?,
                    {_TODO.last_extended_at} = ?, {_TODO.original_due_date} = ?
                WHERE {_TODO.id} = ?
                """,
                (
                    task.title,
                    task.description,
                    1 if task.completed else 0,
                    _iso(task.completed_at),
                    _iso(task.due_date),
                    task.extension_count,
                    _iso(task.last_extended_at),
                    _iso(task.original_due_date),
                    task.id,
                ),
            )
            if cur.rowcount == 0:
                raise KeyError(f"Todo {task.id} does not exist")
            saved = self._select_one(conn, task.id)
            assert saved is not None
            return saved

    def delete(self, task_id: int) -> bool:
        with self._db.connection() as conn:
            cur = conn.execute(f"DELETE FROM {_TODO.table} WHERE {_TODO.id} = ?", (task_id,))
            return cur.rowcount > 0

    @staticmethod
    def _order_sql(sort: TaskSort) -> str:
        direction = "DESC" if sort.descending else "ASC"
        return f"ORDER BY {sort.field} {direction}, {_TODO.id} {direction}"

    def list_by_owner(self, owner_id: int, sort: TaskSort = TaskSort.CREATED_AT_DESC) -> List[Task]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM {_TODO.table} WHERE {_TODO.owner_id} = ? {self._order_sql(sort)}",
                (owner_id,),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def list_by_owner_and_completed(
        self, owner_id: int, completed: bool, sort: TaskSort = TaskSort.CREATED_AT_DESC
    ) -> List[Task]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_TODO.table}
                WHERE {_TODO.owner_id} = ? AND {_TODO.completed} = ?
                {self._order_sql(sort)}
                """,
                (owner_id, 1 if completed else 0),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def list_overdue(self, owner_id: int, today: date) -> List[Task]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_TODO.table}
                WHERE {_TODO.owner_id} = ? AND {_TODO.completed} = 0 AND {_TODO.due_date} < ?
                {self._order_sql(TaskSort.DUE_DATE_ASC)}
                """,
                (owner_id, today.isoformat()),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def list_due_between(self, owner_id: int, start: date, end: date) -> List[Task]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_TODO.table}
                WHERE {_TODO.owner_id} = ? AND {_TODO.completed} = 0
                    AND {_TODO.due_date} BETWEEN ? AND ?
                {self._order_sql(TaskSort.DUE_DATE_ASC)}
                """,
                (owner_id, start.isoformat(), end.isoformat()),
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def delete_by_owner(self, owner_id: int) -> int:
        with self._db.connection() as conn:
            cur = conn.execute(f"DELETE FROM {_TODO.table} WHERE {_TODO.owner_id} = ?", (owner_id,))
            return cur.rowcount
