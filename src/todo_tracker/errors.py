from __future__ import annotations

from enum import Enum
from typing import Optional


class TodoTrackerError(Exception):
    """
    Base class for all typed failures raised by the todo tracker core.

    The ``error`` attribute is the stable kind name used in HTTP error bodies.
    """

    error: str = "TodoTrackerError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


# PUBLIC_INTERFACE
class AccountNotFoundError(TodoTrackerError):
    """The acting username does not resolve to a stored account."""

    error = "AccountNotFound"

    @classmethod
    def for_username(cls, username: str) -> "AccountNotFoundError":
        return cls(f"Account not found: {username}")


# PUBLIC_INTERFACE
class AccountAlreadyExistsError(TodoTrackerError):
    """Registration attempted with a username that is already taken."""

    error = "AccountAlreadyExists"

    @classmethod
    def for_username(cls, username: str) -> "AccountAlreadyExistsError":
        return cls(f"Username already registered: {username}")


# PUBLIC_INTERFACE
class TaskNotFoundError(TodoTrackerError):
    """No task with the given id exists at all."""

    error = "TaskNotFound"

    def __init__(self, message: str, task_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.task_id = task_id

    @classmethod
    def for_id(cls, task_id: int) -> "TaskNotFoundError":
        return cls(f"Todo not found: {task_id}", task_id=task_id)


# PUBLIC_INTERFACE
class UnauthorizedAccessError(TodoTrackerError):
    """The task exists but belongs to a different account."""

    error = "Unauthorized"

    def __init__(self, message: str = "You do not have access to this todo", task_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.task_id = task_id


# PUBLIC_INTERFACE
class InvalidInputError(TodoTrackerError, ValueError):
    """Structurally invalid input (blank title, missing due date, oversized fields), detected before persistence."""

    error = "ValidationError"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


# PUBLIC_INTERFACE
class InvalidExtensionError(TodoTrackerError, ValueError):
    """Extension day count is not positive or exceeds the hard cap."""

    error = "InvalidExtension"


# PUBLIC_INTERFACE
class IneligibilityReason(str, Enum):
    """Which clause of the extension eligibility rule failed, in priority order."""

    COMPLETED = "completed"
    NO_DUE_DATE = "no_due_date"
    OVERDUE = "overdue"
    BEYOND_WINDOW = "beyond_window"

    @property
    def description(self) -> str:
        return _REASON_TEXT[self]


_REASON_TEXT = {
    IneligibilityReason.COMPLETED: "todo is already completed",
    IneligibilityReason.NO_DUE_DATE: "todo has no due date",
    IneligibilityReason.OVERDUE: "todo is already overdue",
    IneligibilityReason.BEYOND_WINDOW: "due date beyond the 3-day extension window",
}


# PUBLIC_INTERFACE
class ExtensionNotAllowedError(TodoTrackerError):
    """The task is owned and the input is valid, but the task is not eligible for extension."""

    error = "ExtensionNotAllowed"

    def __init__(self, reason: IneligibilityReason, task_id: Optional[int] = None) -> None:
        super().__init__(f"This todo cannot be extended: {reason.description}")
        self.reason = reason
        self.task_id = task_id
