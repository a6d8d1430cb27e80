from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from .clock import Clock, SystemClock
from .date_policy import MAX_EXTENSION_DAYS, DatePolicy
from .errors import ExtensionNotAllowedError, IneligibilityReason, InvalidExtensionError
from .models import Task
from .ownership import resolve_ownership
from .repositories import AccountRepository, TaskRepository
from .todo_service import require_account_id

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ExtensionPreview:
    """What an extension would do, computed without persisting anything."""

    current_due_date: date
    new_due_date: date
    extension_days: int


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class ExtensionForm:
    """Data needed to offer an extension for one eligible todo."""

    task_id: int
    title: str
    current_due_date: date
    max_extension_days: int = MAX_EXTENSION_DAYS


# PUBLIC_INTERFACE
class ExtensionService:
    """
    Due-date extension workflow.

    A todo may be extended only while it is incomplete and due today or within
    the next three days. Each successful call pushes the due date forward,
    counts one extension and stamps the time; the first one also freezes the
    pre-extension due date as ``original_due_date``.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        tasks: TaskRepository,
        date_policy: Optional[DatePolicy] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._accounts = accounts
        self._tasks = tasks
        self._clock = clock or SystemClock()
        self._date_policy = date_policy or DatePolicy(self._clock)

    def is_eligible_for_extension(self, task: Optional[Task]) -> bool:
        if task is None:
            return False
        return task.is_eligible_for_extension(self._clock.today())

    def ineligibility_reason(self, task: Task) -> Optional[IneligibilityReason]:
        """Return why ``task`` cannot be extended today, or None if it can."""
        return task.extension_ineligibility(self._clock.today())

    def validate_extension_days(self, days: int) -> None:
        """
        Reject non-positive day counts and anything above the 365 day cap.

        Raises:
            InvalidExtensionError
        """
        if not self._date_policy.is_valid_extension_days(days):
            raise InvalidExtensionError(f"Extension days must be positive, got: {days}")
        if days > MAX_EXTENSION_DAYS:
            raise InvalidExtensionError(
                f"Extension days must not exceed {MAX_EXTENSION_DAYS}, got: {days}"
            )

    def extend_todo(self, task_id: int, days: int, username: str) -> Task:
        """
        Extend an owned, eligible todo by ``days`` days.

        Day validation happens before any lookup. The eligibility check and the
        write share one ``atomic`` block, so concurrent extensions of the same
        todo cannot both pass the check.

        Raises:
            InvalidExtensionError: bad day count
            AccountNotFoundError: unknown acting account
            TaskNotFoundError / UnauthorizedAccessError: from ownership resolution
            ExtensionNotAllowedError: todo outside the extension window or completed
        """
        logger.info("Account %s extending todo id=%s by %s days", username, task_id, days)
        self.validate_extension_days(days)
        owner_id = require_account_id(self._accounts, username)

        with self._tasks.atomic():
            task = resolve_ownership(self._tasks, task_id, owner_id).unwrap(task_id, username)

            reason = self.ineligibility_reason(task)
            if reason is not None:
                logger.warning("Todo %s is not eligible for extension: %s", task_id, reason.value)
                raise ExtensionNotAllowedError(reason, task_id=task_id)

            task.extend_due_date(days, self._clock.now())
            extended = self._tasks.save(task)

        logger.info(
            "Todo extended id=%s new_due_date=%s extensions=%s account=%s",
            task_id,
            extended.due_date,
            extended.extension_count,
            username,
        )
        return extended

    def preview_extension(self, task_id: int, username: str, days: int) -> ExtensionPreview:
        """
        Compute the due date an extension would produce. Nothing is saved and
        eligibility is not required.

        Raises:
            AccountNotFoundError, TaskNotFoundError, UnauthorizedAccessError,
            InvalidExtensionError
        """
        owner_id = require_account_id(self._accounts, username)
        task = resolve_ownership(self._tasks, task_id, owner_id).unwrap(task_id, username)
        self.validate_extension_days(days)
        new_due_date = self._date_policy.calculate_new_due_date(task.due_date, days)
        return ExtensionPreview(current_due_date=task.due_date, new_due_date=new_due_date, extension_days=days)

    def get_extension_form(self, task_id: int, username: str) -> ExtensionForm:
        """
        Return the data to offer an extension of an owned todo.

        Raises:
            ExtensionNotAllowedError: when the todo is not currently eligible.
        """
        owner_id = require_account_id(self._accounts, username)
        task = resolve_ownership(self._tasks, task_id, owner_id).unwrap(task_id, username)
        reason = self.ineligibility_reason(task)
        if reason is not None:
            raise ExtensionNotAllowedError(reason, task_id=task_id)
        assert task.id is not None
        return ExtensionForm(task_id=task.id, title=task.title, current_due_date=task.due_date)

    def get_eligible_todos(self, username: str) -> List[Task]:
        """Incomplete todos of ``username`` that can be extended today."""
        logger.debug("Listing todos eligible for extension account=%s", username)
        owner_id = require_account_id(self._accounts, username)
        incomplete = self._tasks.list_by_owner_and_completed(owner_id, False)
        eligible = [t for t in incomplete if self.is_eligible_for_extension(t)]
        logger.debug("Account %s has %s todos eligible for extension", username, len(eligible))
        return eligible
