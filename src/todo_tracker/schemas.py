from __future__ import annotations

from datetime import date, datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .date_policy import MAX_EXTENSION_DAYS
from .extension_service import ExtensionForm, ExtensionPreview
from .models import Account, Task
from .todo_service import TodoSummary

# Shared type for incoming due_date which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[date]:
    """
    Internal helper to normalize due_date input into a calendar date.
    - If value is a datetime, its time component is dropped.
    - If value is a date, return as-is.
    - If value is a string, parse it as an ISO date, or as an ISO datetime and keep the date part.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            return date.fromisoformat(s)
        except ValueError:
            try:
                return datetime.fromisoformat(s).date()
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use an ISO8601 date such as '2025-01-31'."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item.

    Length and presence rules are enforced by the todo service so they apply to
    every caller, not only HTTP; this schema only normalizes types.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Renew passport",
                "description": "Bring two photos",
                "due_date": "2025-02-01",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item (1..255 chars)")
    description: Optional[str] = Field(default=None, description="Optional detailed description (max 1000 chars)")
    due_date: Optional[date] = Field(default=None, description="Due date of the todo item (ISO8601 date)")

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        """
        Normalize due_date from str/date/datetime to date.
        """
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TodoUpdate(TodoCreate):
    """
    Schema for editing an existing Todo item. Replaces title, description and
    due date; completion and extension history are not editable here.
    """


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    id: int = Field(..., description="Unique identifier of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    completed: bool = Field(..., description="Completion status flag")
    completed_at: Optional[datetime] = Field(default=None, description="When the todo was completed")
    due_date: date = Field(..., description="Due date of the todo item")
    created_at: datetime = Field(..., description="Creation timestamp")
    extension_count: int = Field(..., description="Number of successful extensions")
    last_extended_at: Optional[datetime] = Field(default=None, description="Timestamp of the last extension")
    original_due_date: Optional[date] = Field(
        default=None, description="Due date before the first extension, if ever extended"
    )
    total_extension_days: int = Field(..., description="Days the due date moved since the first extension")
    overdue: bool = Field(..., description="Incomplete and past its due date")
    eligible_for_extension: bool = Field(..., description="Whether the todo can be extended today")

    @classmethod
    def from_task(cls, task: Task, today: date) -> "TodoOut":
        return cls(
            id=task.id,  # type: ignore[arg-type]
            title=task.title,
            description=task.description,
            completed=task.completed,
            completed_at=task.completed_at,
            due_date=task.due_date,
            created_at=task.created_at,  # type: ignore[arg-type]
            extension_count=task.extension_count,
            last_extended_at=task.last_extended_at,
            original_due_date=task.original_due_date,
            total_extension_days=task.total_extension_days,
            overdue=task.is_overdue(today),
            eligible_for_extension=task.is_eligible_for_extension(today),
        )


# PUBLIC_INTERFACE
class TodoSummaryOut(BaseModel):
    """Todo counts for the current account."""

    total: int
    completed: int
    incomplete: int
    overdue: int

    @classmethod
    def from_summary(cls, summary: TodoSummary) -> "TodoSummaryOut":
        return cls(
            total=summary.total,
            completed=summary.completed,
            incomplete=summary.incomplete,
            overdue=summary.overdue,
        )


# PUBLIC_INTERFACE
class ExtendTodoRequest(BaseModel):
    """
    Body of an extension request. ``todo_id`` must match the id in the path when given.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"todo_id": 1, "extension_days": 3}})

    todo_id: Optional[int] = Field(default=None, description="Id of the todo to extend")
    extension_days: int = Field(..., description=f"Days to add to the due date (1..{MAX_EXTENSION_DAYS})")


# PUBLIC_INTERFACE
class ExtendTodoResponse(BaseModel):
    """Result of an extension request, returned for both success and failure."""

    success: bool
    message: str
    todo_id: Optional[int] = None
    new_due_date: Optional[date] = None
    original_due_date: Optional[date] = None
    total_extension_days: Optional[int] = None

    @classmethod
    def succeeded(cls, task: Task) -> "ExtendTodoResponse":
        return cls(
            success=True,
            message="Todo extended",
            todo_id=task.id,
            new_due_date=task.due_date,
            original_due_date=task.original_due_date,
            total_extension_days=task.total_extension_days,
        )

    @classmethod
    def failed(cls, message: str, todo_id: Optional[int] = None) -> "ExtendTodoResponse":
        return cls(success=False, message=message, todo_id=todo_id)


# PUBLIC_INTERFACE
class ExtensionPreviewOut(BaseModel):
    """Due date an extension would produce; nothing is saved."""

    current_due_date: date
    new_due_date: date
    extension_days: int

    @classmethod
    def from_preview(cls, preview: ExtensionPreview) -> "ExtensionPreviewOut":
        return cls(
            current_due_date=preview.current_due_date,
            new_due_date=preview.new_due_date,
            extension_days=preview.extension_days,
        )


# PUBLIC_INTERFACE
class ExtensionFormOut(BaseModel):
    """Data needed to present the extension dialog for one todo."""

    todo_id: int
    title: str
    current_due_date: date
    max_extension_days: int

    @classmethod
    def from_form(cls, form: ExtensionForm) -> "ExtensionFormOut":
        return cls(
            todo_id=form.task_id,
            title=form.title,
            current_due_date=form.current_due_date,
            max_extension_days=form.max_extension_days,
        )


# PUBLIC_INTERFACE
class AccountRegister(BaseModel):
    """Schema for registering a new account."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "alice", "password": "s3cret", "confirm_password": "s3cret"}}
    )

    username: str = Field(..., description="Login name (3..50 chars)")
    password: str = Field(..., description="Password (4..100 chars)")
    confirm_password: str = Field(..., description="Must repeat the password")


# PUBLIC_INTERFACE
class AccountOut(BaseModel):
    """Public view of an account. Never includes the credential hash."""

    id: int
    username: str
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountOut":
        return cls(id=account.id, username=account.username, created_at=account.created_at)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Body returned for every typed failure."""

    error: str = Field(..., description="Failure kind, e.g. TaskNotFound or Unauthorized")
    message: str = Field(..., description="Human readable message")
    detail: Optional[List[Any]] = Field(default=None, description="Field level details for validation errors")
