from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ..auth import get_current_account
from ..clock import Clock
from ..dependencies import get_clock, get_extension_service, get_todo_service
from ..errors import TaskNotFoundError, TodoTrackerError
from ..extension_service import ExtensionService
from ..http_errors import status_for
from ..models import Account
from ..schemas import (
    ErrorResponse,
    ExtendTodoRequest,
    ExtendTodoResponse,
    ExtensionFormOut,
    ExtensionPreviewOut,
    TodoCreate,
    TodoOut,
    TodoSummaryOut,
    TodoUpdate,
)
from ..todo_service import TodoService

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)

_ownership_errors = {
    403: {"model": ErrorResponse, "description": "Todo belongs to another account"},
    404: {"model": ErrorResponse, "description": "Todo not found"},
}


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item owned by the current account.",
    responses={
        201: {"description": "Todo created successfully"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
)
def create_todo(
    payload: TodoCreate,
    account: Account = Depends(get_current_account),
    todos: TodoService = Depends(get_todo_service),
    clock: Clock = Depends(get_clock),
) -> TodoOut:
    created = todos.create_todo(payload.title, payload.description, payload.due_date, account.username)
    return TodoOut.from_task(created, clock.today())


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=List[TodoOut],
    summary="List Todos",
    description=(
        "List the current account's todos.\n\n"
        "Query parameters:\n"
        "- sort: one of created_at_desc (default), created_at_asc, due_date_asc, due_date_desc; "
        "unknown values fall back to created_at_desc\n"
        "- completed: when given, only completed (true) or incomplete (false) todos, newest first"
    ),
)
def list_todos(
    sort: Optional[str] = Query("created_at_desc", description="Sort key"),
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    account: Account = Depends(get_current_account),
    todos: TodoService = Depends(get_todo_service),
    clock: Clock = Depends(get_clock),
) -> List[TodoOut]:
    if completed is True:
        items = todos.get_completed_todos(account.username)
    elif completed is False:
        items = todos.get_incomplete_todos(account.username)
    else:
        items = todos.list_todos(account.username, sort)
    today = clock.today()
    return [TodoOut.from_task(t, today) for t in items]


# PUBLIC_INTERFACE
@router.get("/summary", response_model=TodoSummaryOut, summary="Todo Summary")
def todo_summary(
    account: Account = Depends(get_current_account),
    todos: TodoService = Depends(get_todo_service),
) -> TodoSummaryOut:
    """Counts of total, completed, incomplete and overdue todos."""
    return TodoSummaryOut.from_summary(todos.get_summary(account.username))


# PUBLIC_INTERFACE
@router.get("/overdue", response_model=List[TodoOut], summary="Overdue Todos")
def overdue_todos(
    account: Account = Depends(get_current_account),
    todos: TodoService = Depends(get_todo_service),
    clock: Clock = Depends(get_clock),
) -> List[TodoOut]:
    """Incomplete todos past their due date, earliest first."""
    today = clock.today()
    return [TodoOut.from_task(t, today) for t in todos.get_overdue_todos(account.username)]


# PUBLIC_INTERFACE
@router.get("/due-soon", response_model=List[TodoOut], summary="Todos Due Soon")
def due_soon_todos(
    account: Account = Depends(get_current_account),
    todos: TodoService = Depends(get_todo_service),
    clock: Clock = Depends(get_clock),
) -> List[TodoOut]:
    """Incomplete todos due today or within the next three days."""
    today = clock.today()
    return [TodoOut.from_task(t, today) for t in todos.get_due_soon_todos(account.username)]


# PUBLIC_INTERFACE
@router.get("/eligible", response_model=List[TodoOut], summary="Todos Eligible For Extension")
def eligible_todos(
    account: Account = Depends(get_current_account),
    extensions: ExtensionService = Depends(get_extension_service),
    clock: Clock = Depends(get_clock),
) -> List[TodoOut]:
    """Todos that can still be extended today."""
    today = clock.today()
    return [TodoOut.from_task(t, today) for t in extensions.get_eligible_todos(account.username)]


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single Todo item by ID. Todos of other accounts are reported as not found.",
    responses={404: {"model": ErrorResponse, "description": "Todo not found"}},
)
def get_todo(
    todo_id: int,
    account: Account = Depends(get_current_account),
    todos: TodoService = Depends(get_todo_service),
    clock: Clock = Depends(get_clock),
) -> TodoOut:
    item = todos.find_todo(todo_id, account.username)
    if item is None:
        raise TaskNotFoundError.for_id(todo_id)
    return TodoOut.from_task(item, clock.today())


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Edit Todo",
    description="Replace title, description and due date. Completion and extension history are kept.",
    responses={**_ownership_errors, 422: {"model": ErrorResponse, "description": "Validation error"}},
)
def update_todo(
    todo_id: int,
    payload: TodoUpdate,
    account: Account = Depends(get_current_account),
    todos: TodoService = Depends(get_todo_service),
    clock: Clock = Depends(get_clock),
) -> TodoOut:
    updated = todos.update_todo(todo_id, account.username, payload.title, payload.description, payload.due_date)
    return TodoOut.from_task(updated, clock.today())


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Todo",
    responses={204: {"description": "Todo deleted"}, **_ownership_errors},
)
def delete_todo(
    todo_id: int,
    account: Account = Depends(get_current_account),
    todos: TodoService = Depends(get_todo_service),
) -> None:
    todos.delete_todo(todo_id, account.username)
    return None


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/toggle",
    response_model=TodoOut,
    summary="Toggle Todo Completion",
    responses=_ownership_errors,
)
def toggle_todo(
    todo_id: int,
    account: Account = Depends(get_current_account),
    todos: TodoService = Depends(get_todo_service),
    clock: Clock = Depends(get_clock),
) -> TodoOut:
    toggled = todos.toggle_todo(todo_id, account.username)
    return TodoOut.from_task(toggled, clock.today())


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}/extend",
    response_model=ExtensionFormOut,
    summary="Extension Form",
    description="Current due date and limits for extending an eligible todo.",
    responses={**_ownership_errors, 409: {"model": ErrorResponse, "description": "Todo is not eligible"}},
)
def extension_form(
    todo_id: int,
    account: Account = Depends(get_current_account),
    extensions: ExtensionService = Depends(get_extension_service),
) -> ExtensionFormOut:
    return ExtensionFormOut.from_form(extensions.get_extension_form(todo_id, account.username))


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}/extend/preview",
    response_model=ExtensionPreviewOut,
    summary="Preview Extension",
    description="Compute the due date an extension would produce without saving anything.",
    responses={**_ownership_errors, 400: {"model": ErrorResponse, "description": "Invalid day count"}},
)
def preview_extension(
    todo_id: int,
    days: int = Query(..., description="Days to add to the due date"),
    account: Account = Depends(get_current_account),
    extensions: ExtensionService = Depends(get_extension_service),
) -> ExtensionPreviewOut:
    return ExtensionPreviewOut.from_preview(extensions.preview_extension(todo_id, account.username, days))


# PUBLIC_INTERFACE
@router.post(
    "/{todo_id}/extend",
    response_model=ExtendTodoResponse,
    summary="Extend Todo",
    description=(
        "Push the due date of an incomplete todo that is due today or within three days. "
        "Failures are reported with success=false and the matching status code."
    ),
    responses={
        400: {"model": ExtendTodoResponse, "description": "Invalid day count or mismatching todo id"},
        403: {"model": ExtendTodoResponse, "description": "Todo belongs to another account"},
        404: {"model": ExtendTodoResponse, "description": "Todo not found"},
        409: {"model": ExtendTodoResponse, "description": "Todo is not eligible for extension"},
    },
)
def extend_todo(
    todo_id: int,
    payload: ExtendTodoRequest,
    account: Account = Depends(get_current_account),
    extensions: ExtensionService = Depends(get_extension_service),
):
    if payload.todo_id is not None and payload.todo_id != todo_id:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ExtendTodoResponse.failed("Todo id in body does not match the path", todo_id).model_dump(
                mode="json"
            ),
        )
    try:
        extended = extensions.extend_todo(todo_id, payload.extension_days, account.username)
    except TodoTrackerError as exc:
        return JSONResponse(
            status_code=status_for(exc),
            content=ExtendTodoResponse.failed(exc.message, todo_id).model_dump(mode="json"),
        )
    return ExtendTodoResponse.succeeded(extended)
