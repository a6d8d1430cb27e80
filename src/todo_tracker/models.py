from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from .date_policy import EXTENSION_WINDOW_DAYS
from .errors import IneligibilityReason, InvalidExtensionError

TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000


# PUBLIC_INTERFACE
@dataclass(eq=False)
class Account:
    """
    A registered identity that owns todos.

    Fields:
    - id: Unique integer identifier assigned by the account store (None before persistence)
    - username: Unique login name, immutable after registration
    - password_hash: Opaque credential hash produced by the credential verifier
    - created_at: Registration timestamp assigned by the account store
    """

    username: str
    password_hash: str
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return self.id is not None and self.id == other.id

    def __hash__(self) -> int:
        # Constant per type so the hash survives id assignment.
        return hash(Account)

    def copy(self) -> "Account":
        return dataclasses.replace(self)

    def __repr__(self) -> str:
        return f"Account(id={self.id}, username={self.username!r}, created_at={self.created_at})"


# PUBLIC_INTERFACE
@dataclass(eq=False)
class Task:
    """
    A single todo owned by exactly one account.

    Fields:
    - id: Unique integer identifier assigned by the task store (None before persistence)
    - title: Short title (non-blank, at most 255 chars)
    - description: Optional detailed description (at most 1000 chars)
    - due_date: Calendar date the todo is due
    - owner_id: Id of the owning account, immutable
    - completed / completed_at: completion flag and the moment it was first set;
      completed_at is present exactly when completed is True
    - created_at: Creation timestamp assigned by the task store, immutable
    - extension_count / last_extended_at / original_due_date: extension history;
      original_due_date is the due date as it stood before the first extension
      and is present exactly when extension_count > 0

    State changes go through the methods below so the invariants above hold.
    """

    title: str
    due_date: date
    owner_id: int
    description: Optional[str] = None
    id: Optional[int] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    extension_count: int = 0
    last_extended_at: Optional[datetime] = None
    original_due_date: Optional[date] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return self.id is not None and self.id == other.id

    def __hash__(self) -> int:
        return hash(Task)

    def __repr__(self) -> str:
        return (
            f"Task(id={self.id}, title={self.title!r}, completed={self.completed}, "
            f"created_at={self.created_at}, due_date={self.due_date}, completed_at={self.completed_at})"
        )

    def copy(self) -> "Task":
        """Return a detached copy, used by stores so callers never share state with them."""
        return dataclasses.replace(self)

    # ---- completion ----

    def set_completed(self, completed: bool, now: datetime) -> None:
        """
        Set the completion flag and keep ``completed_at`` in step with it.

        Completing an already completed todo keeps the original timestamp.
        """
        self.completed = completed
        if completed and self.completed_at is None:
            self.completed_at = now
        elif not completed:
            self.completed_at = None

    def toggle_completed(self, now: datetime) -> None:
        self.set_completed(not self.completed, now)

    # ---- editing ----

    def apply_edit(self, title: str, description: Optional[str], due_date: date) -> None:
        """Overwrite the user-editable fields. Completion and extension history are left alone."""
        self.title = title
        self.description = description
        self.due_date = due_date

    # ---- due date checks ----

    def is_overdue(self, today: date) -> bool:
        if self.completed:
            return False
        return self.due_date < today

    def is_due_soon(self, today: date) -> bool:
        """Incomplete and due today or within the next three days. Overdue todos are not due soon."""
        if self.completed:
            return False
        return today <= self.due_date <= today + timedelta(days=EXTENSION_WINDOW_DAYS)

    # ---- extension ----

    def extension_ineligibility(self, today: date) -> Optional[IneligibilityReason]:
        """
        Return the first failing clause of the extension rule, or None when eligible.

        Clauses are checked in priority order: completed, missing due date,
        overdue, beyond the window. A todo due today or up to three days ahead
        is eligible; one due yesterday is not.
        """
        if self.completed:
            return IneligibilityReason.COMPLETED
        if self.due_date is None:
            return IneligibilityReason.NO_DUE_DATE
        if not self.due_date > today - timedelta(days=1):
            return IneligibilityReason.OVERDUE
        if not self.due_date < today + timedelta(days=EXTENSION_WINDOW_DAYS + 1):
            return IneligibilityReason.BEYOND_WINDOW
        return None

    def is_eligible_for_extension(self, today: date) -> bool:
        return self.extension_ineligibility(today) is None

    def extend_due_date(self, days: int, now: datetime) -> None:
        """
        Push the due date ``days`` days forward and record the extension.

        The pre-extension due date is frozen into ``original_due_date`` on the
        first call only; every call counts as one extension regardless of days.

        Raises:
            InvalidExtensionError: if ``days`` is not positive.
        """
        if days <= 0:
            raise InvalidExtensionError(f"Extension days must be positive, got: {days}")

        if self.original_due_date is None:
            self.original_due_date = self.due_date

        self.due_date = self.due_date + timedelta(days=days)
        self.extension_count += 1
        self.last_extended_at = now

    @property
    def total_extension_days(self) -> int:
        """Net days the due date moved since before the first extension; 0 if never extended."""
        if self.original_due_date is None:
            return 0
        return (self.due_date - self.original_due_date).days
