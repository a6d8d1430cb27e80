from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import TaskNotFoundError, UnauthorizedAccessError
from .models import Task
from .repositories import TaskRepository

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class Ownership(str, Enum):
    """Outcome of looking a todo up on behalf of an account."""

    OWNED = "owned"
    NOT_OWNED = "not_owned"
    NOT_FOUND = "not_found"


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Resolution:
    """
    Tagged result of ``resolve_ownership``.

    ``task`` is populated only for OWNED; a NOT_OWNED result never carries any
    attribute of the other account's todo.
    """

    status: Ownership
    task: Optional[Task] = None

    @property
    def owned(self) -> bool:
        return self.status is Ownership.OWNED

    def unwrap(self, task_id: int, username: Optional[str] = None) -> Task:
        """
        Return the owned todo or raise the matching typed failure.

        Raises:
            TaskNotFoundError: for NOT_FOUND
            UnauthorizedAccessError: for NOT_OWNED
        """
        if self.status is Ownership.OWNED and self.task is not None:
            return self.task
        if self.status is Ownership.NOT_OWNED:
            logger.warning("Account %s attempted to access a todo it does not own id=%s", username, task_id)
            raise UnauthorizedAccessError(task_id=task_id)
        logger.warning("Todo not found id=%s", task_id)
        raise TaskNotFoundError.for_id(task_id)


# PUBLIC_INTERFACE
def resolve_ownership(tasks: TaskRepository, task_id: int, owner_id: int) -> Resolution:
    """
    Look a todo up scoped to its owner, falling back to a bare existence check.

    - found for (task_id, owner_id) -> OWNED with the todo
    - otherwise, id exists under someone else -> NOT_OWNED
    - otherwise -> NOT_FOUND
    """
    task = tasks.get_for_owner(task_id, owner_id)
    if task is not None:
        return Resolution(Ownership.OWNED, task)
    if tasks.exists(task_id):
        return Resolution(Ownership.NOT_OWNED)
    return Resolution(Ownership.NOT_FOUND)
