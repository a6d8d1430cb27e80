from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date
from enum import Enum
from threading import RLock
from typing import Dict, Iterator, List, Optional

from .clock import Clock, SystemClock
from .errors import AccountAlreadyExistsError
from .models import Account, Task
from .settings import get_settings


# PUBLIC_INTERFACE
class TaskSort(str, Enum):
    """Orderings supported when listing an account's todos."""

    CREATED_AT_DESC = "created_at_desc"
    CREATED_AT_ASC = "created_at_asc"
    DUE_DATE_ASC = "due_date_asc"
    DUE_DATE_DESC = "due_date_desc"

    @classmethod
    def parse(cls, value: Optional[str]) -> "TaskSort":
        """
        Parse a user supplied sort key. Unknown or missing values fall back to
        CREATED_AT_DESC instead of raising. Accepts both ``due_date_asc`` and
        ``DUE_DATE_ASC`` spellings.
        """
        if isinstance(value, TaskSort):
            return value
        key = (value or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return cls.CREATED_AT_DESC

    @property
    def field(self) -> str:
        return "created_at" if self in (TaskSort.CREATED_AT_ASC, TaskSort.CREATED_AT_DESC) else "due_date"

    @property
    def descending(self) -> bool:
        return self in (TaskSort.CREATED_AT_DESC, TaskSort.DUE_DATE_DESC)


# PUBLIC_INTERFACE
class AccountRepository(ABC):
    """Abstract contract for account storage backends."""

    @abstractmethod
    def add(self, username: str, password_hash: str) -> Account:
        """
        Persist a new account and return it with id and created_at assigned.

        Raises:
            AccountAlreadyExistsError: the username is taken, checked atomically with the insert.
        """

    @abstractmethod
    def get(self, account_id: int) -> Optional[Account]:
        """Return an account by id, or None if not found."""

    @abstractmethod
    def get_by_username(self, username: str) -> Optional[Account]:
        """Return an account by exact username, or None if not found."""

    @abstractmethod
    def exists_by_username(self, username: str) -> bool:
        """Return True if the username is taken."""

    @abstractmethod
    def delete(self, account_id: int) -> bool:
        """Delete an account row. Owned todos are removed by the caller. Return True if deleted."""


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """
    Abstract contract for todo storage backends.

    Every method returns detached copies; mutating a returned Task has no
    effect until it is passed back to ``save``.
    """

    @abstractmethod
    def add(self, task: Task) -> Task:
        """Persist a new todo, assigning id and created_at. Return the stored copy."""

    @abstractmethod
    def get(self, task_id: int) -> Optional[Task]:
        """Return a todo by id regardless of owner, or None."""

    @abstractmethod
    def get_for_owner(self, task_id: int, owner_id: int) -> Optional[Task]:
        """Return a todo by id only if it belongs to ``owner_id``, else None."""

    @abstractmethod
    def exists(self, task_id: int) -> bool:
        """Return True if a todo with this id exists under any owner. Loads no attributes."""

    @abstractmethod
    def save(self, task: Task) -> Task:
        """Overwrite an existing todo with the given state and return the stored copy."""

    @abstractmethod
    def delete(self, task_id: int) -> bool:
        """Delete a todo by id. Return True if deleted, False if not found."""

    @abstractmethod
    def list_by_owner(self, owner_id: int, sort: TaskSort = TaskSort.CREATED_AT_DESC) -> List[Task]:
        """Return all todos of an owner in the requested order."""

    @abstractmethod
    def list_by_owner_and_completed(
        self, owner_id: int, completed: bool, sort: TaskSort = TaskSort.CREATED_AT_DESC
    ) -> List[Task]:
        """Return an owner's todos with the given completion flag in the requested order."""

    @abstractmethod
    def delete_by_owner(self, owner_id: int) -> int:
        """Delete every todo of an owner. Return the number of todos removed."""

    @abstractmethod
    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Run the enclosed block as one unit with respect to other writers.

        Reads and writes issued by the current thread inside the block see a
        consistent state and either all land or none do.
        """

    def list_overdue(self, owner_id: int, today: date) -> List[Task]:
        """Incomplete todos due before ``today``, earliest due first."""
        incomplete = self.list_by_owner_and_completed(owner_id, False, TaskSort.DUE_DATE_ASC)
        return [t for t in incomplete if t.due_date < today]

    def list_due_between(self, owner_id: int, start: date, end: date) -> List[Task]:
        """Incomplete todos due within [start, end], earliest due first."""
        incomplete = self.list_by_owner_and_completed(owner_id, False, TaskSort.DUE_DATE_ASC)
        return [t for t in incomplete if start <= t.due_date <= end]


def _sorted(tasks: List[Task], sort: TaskSort) -> List[Task]:
    # Ties broken by id so ordering is deterministic for equal timestamps.
    return sorted(
        tasks,
        key=lambda t: (getattr(t, sort.field), t.id or 0),
        reverse=sort.descending,
    )


class InMemoryAccountRepository(AccountRepository):
    """Thread-safe in-memory account store suitable for testing and default runtime."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._lock = RLock()
        self._items: Dict[int, Account] = {}
        self._ids = itertools.count(1)
        self._clock = clock or SystemClock()

    def add(self, username: str, password_hash: str) -> Account:
        with self._lock:
            if any(item.username == username for item in self._items.values()):
                raise AccountAlreadyExistsError.for_username(username)
            account = Account(
                username=username,
                password_hash=password_hash,
                id=next(self._ids),
                created_at=self._clock.now(),
            )
            self._items[account.id] = account
            return account.copy()

    def get(self, account_id: int) -> Optional[Account]:
        with self._lock:
            item = self._items.get(account_id)
            return None if item is None else item.copy()

    def get_by_username(self, username: str) -> Optional[Account]:
        with self._lock:
            for item in self._items.values():
                if item.username == username:
                    return item.copy()
            return None

    def exists_by_username(self, username: str) -> bool:
        return self.get_by_username(username) is not None

    def delete(self, account_id: int) -> bool:
        with self._lock:
            return self._items.pop(account_id, None) is not None


class InMemoryTaskRepository(TaskRepository):
    """
    Thread-safe in-memory todo store suitable for testing and default runtime.

    ``atomic`` holds the store lock for the whole block, which serializes
    read-check-write sequences across request threads.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._lock = RLock()
        self._items: Dict[int, Task] = {}
        self._ids = itertools.count(1)
        self._clock = clock or SystemClock()

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self._lock:
            yield

    def add(self, task: Task) -> Task:
        with self._lock:
            stored = task.copy()
            stored.id = next(self._ids)
            stored.created_at = self._clock.now()
            self._items[stored.id] = stored
            return stored.copy()

    def get(self, task_id: int) -> Optional[Task]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def get_for_owner(self, task_id: int, owner_id: int) -> Optional[Task]:
        with self._lock:
            item = self._items.get(task_id)
            if item is None or item.owner_id != owner_id:
                return None
            return item.copy()

    def exists(self, task_id: int) -> bool:
        with self._lock:
            return task_id in self._items

    def save(self, task: Task) -> Task:
        if task.id is None:
            raise ValueError("Cannot save a todo that has not been added")
        with self._lock:
            existing = self._items.get(task.id)
            if existing is None:
                raise KeyError(f"Todo {task.id} does not exist")
            stored = task.copy()
            # Owner and creation time are immutable once stored.
            stored.owner_id = existing.owner_id
            stored.created_at = existing.created_at
            self._items[task.id] = stored
            return stored.copy()

    def delete(self, task_id: int) -> bool:
        with self._lock:
            return self._items.pop(task_id, None) is not None

    def list_by_owner(self, owner_id: int, sort: TaskSort = TaskSort.CREATED_AT_DESC) -> List[Task]:
        with self._lock:
            items = [t.copy() for t in self._items.values() if t.owner_id == owner_id]
        return _sorted(items, sort)

    def list_by_owner_and_completed(
        self, owner_id: int, completed: bool, sort: TaskSort = TaskSort.CREATED_AT_DESC
    ) -> List[Task]:
        with self._lock:
            items = [
                t.copy()
                for t in self._items.values()
                if t.owner_id == owner_id and t.completed == completed
            ]
        return _sorted(items, sort)

    def delete_by_owner(self, owner_id: int) -> int:
        with self._lock:
            doomed = [tid for tid, t in self._items.items() if t.owner_id == owner_id]
            for tid in doomed:
                del self._items[tid]
            return len(doomed)


# PUBLIC_INTERFACE
def create_repositories(clock: Optional[Clock] = None) -> tuple[AccountRepository, TaskRepository]:
    """
    Factory returning the configured (accounts, tasks) store pair based on settings.
    - memory: InMemoryAccountRepository / InMemoryTaskRepository
    - sqlite: SQLiteAccountRepository / SQLiteTaskRepository sharing one database file
    """
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteAccountRepository, SQLiteDatabase, SQLiteTaskRepository

        database = SQLiteDatabase(settings.sqlite_db_path)
        return SQLiteAccountRepository(database, clock), SQLiteTaskRepository(database, clock)
    return InMemoryAccountRepository(clock), InMemoryTaskRepository(clock)
