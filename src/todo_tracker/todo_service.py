from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple

from .clock import Clock, SystemClock
from .date_policy import EXTENSION_WINDOW_DAYS
from .errors import AccountNotFoundError, InvalidInputError
from .models import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, Account, Task
from .ownership import Ownership, resolve_ownership
from .repositories import AccountRepository, TaskRepository, TaskSort

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class TodoSummary:
    """Per-account todo counts."""

    total: int
    completed: int
    incomplete: int
    overdue: int


# PUBLIC_INTERFACE
def validate_todo_fields(
    title: Optional[str], description: Optional[str], due_date: Optional[date]
) -> Tuple[str, Optional[str], date]:
    """
    Validate user-editable todo fields and return them normalized.

    - title: required, stripped, 1..255 chars
    - description: optional, at most 1000 chars
    - due_date: required

    Raises:
        InvalidInputError: naming the first offending field.
    """
    if title is None or not title.strip():
        raise InvalidInputError("Title must not be blank", field="title")
    title = title.strip()
    if len(title) > TITLE_MAX_LENGTH:
        raise InvalidInputError(f"Title must be at most {TITLE_MAX_LENGTH} characters", field="title")
    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        raise InvalidInputError(
            f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters", field="description"
        )
    if due_date is None:
        raise InvalidInputError("Due date must not be empty", field="due_date")
    return title, description, due_date


def require_account(accounts: AccountRepository, username: str) -> Account:
    """Resolve the acting account or raise AccountNotFoundError."""
    account = accounts.get_by_username(username) if username else None
    if account is None or account.id is None:
        raise AccountNotFoundError.for_username(username)
    return account


def require_account_id(accounts: AccountRepository, username: str) -> int:
    account = require_account(accounts, username)
    assert account.id is not None
    return account.id


# PUBLIC_INTERFACE
class TodoService:
    """
    Create, read, edit, delete and toggle todos on behalf of an account.

    Every todo-specific operation goes through ``resolve_ownership`` so callers
    can tell a missing todo (TaskNotFoundError) from someone else's todo
    (UnauthorizedAccessError). Mutations run inside ``tasks.atomic()``.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        tasks: TaskRepository,
        clock: Optional[Clock] = None,
    ) -> None:
        self._accounts = accounts
        self._tasks = tasks
        self._clock = clock or SystemClock()

    def create_todo(
        self, title: Optional[str], description: Optional[str], due_date: Optional[date], username: str
    ) -> Task:
        title, description, due_date = validate_todo_fields(title, description, due_date)
        logger.info("Account %s creating todo: %s", username, title)
        with self._tasks.atomic():
            owner_id = require_account_id(self._accounts, username)
            created = self._tasks.add(
                Task(title=title, description=description, due_date=due_date, owner_id=owner_id)
            )
        logger.info("Todo created id=%s account=%s", created.id, username)
        return created

    def list_todos(self, username: str, sort: Optional[str] = None) -> List[Task]:
        order = TaskSort.parse(sort)
        logger.debug("Listing todos account=%s sort=%s", username, order.value)
        owner_id = require_account_id(self._accounts, username)
        return self._tasks.list_by_owner(owner_id, order)

    def update_todo(
        self,
        task_id: int,
        username: str,
        title: Optional[str],
        description: Optional[str],
        due_date: Optional[date],
    ) -> Task:
        title, description, due_date = validate_todo_fields(title, description, due_date)
        logger.info("Account %s updating todo id=%s", username, task_id)
        owner_id = require_account_id(self._accounts, username)

        with self._tasks.atomic():
            task = resolve_ownership(self._tasks, task_id, owner_id).unwrap(task_id, username)
            task.apply_edit(title, description, due_date)
            updated = self._tasks.save(task)

        logger.info("Todo updated id=%s account=%s", task_id, username)
        return updated

    def delete_todo(self, task_id: int, username: str) -> None:
        logger.info("Account %s deleting todo id=%s", username, task_id)
        owner_id = require_account_id(self._accounts, username)

        with self._tasks.atomic():
            resolve_ownership(self._tasks, task_id, owner_id).unwrap(task_id, username)
            self._tasks.delete(task_id)

        logger.info("Todo deleted id=%s account=%s", task_id, username)

    def toggle_todo(self, task_id: int, username: str) -> Task:
        logger.info("Account %s toggling todo id=%s", username, task_id)
        owner_id = require_account_id(self._accounts, username)

        with self._tasks.atomic():
            task = resolve_ownership(self._tasks, task_id, owner_id).unwrap(task_id, username)
            task.toggle_completed(self._clock.now())
            updated = self._tasks.save(task)

        logger.info("Todo toggled id=%s completed=%s account=%s", task_id, updated.completed, username)
        return updated

    def find_todo(self, task_id: int, username: str) -> Optional[Task]:
        """Owner-scoped lookup. Returns None both when the todo is missing and when it is not owned."""
        owner_id = require_account_id(self._accounts, username)
        resolution = resolve_ownership(self._tasks, task_id, owner_id)
        return resolution.task if resolution.status is Ownership.OWNED else None

    # ---- read models ----

    def get_completed_todos(self, username: str) -> List[Task]:
        owner_id = require_account_id(self._accounts, username)
        return self._tasks.list_by_owner_and_completed(owner_id, True)

    def get_incomplete_todos(self, username: str) -> List[Task]:
        owner_id = require_account_id(self._accounts, username)
        return self._tasks.list_by_owner_and_completed(owner_id, False)

    def get_overdue_todos(self, username: str) -> List[Task]:
        owner_id = require_account_id(self._accounts, username)
        return self._tasks.list_overdue(owner_id, self._clock.today())

    def get_due_soon_todos(self, username: str) -> List[Task]:
        owner_id = require_account_id(self._accounts, username)
        today = self._clock.today()
        return self._tasks.list_due_between(owner_id, today, today + timedelta(days=EXTENSION_WINDOW_DAYS))

    def get_summary(self, username: str) -> TodoSummary:
        owner_id = require_account_id(self._accounts, username)
        todos = self._tasks.list_by_owner(owner_id)
        today = self._clock.today()
        completed = sum(1 for t in todos if t.completed)
        return TodoSummary(
            total=len(todos),
            completed=completed,
            incomplete=len(todos) - completed,
            overdue=sum(1 for t in todos if t.is_overdue(today)),
        )
