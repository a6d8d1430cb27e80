from __future__ import annotations

import logging
from typing import Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .errors import (
    AccountAlreadyExistsError,
    AccountNotFoundError,
    ExtensionNotAllowedError,
    InvalidExtensionError,
    InvalidInputError,
    TaskNotFoundError,
    TodoTrackerError,
    UnauthorizedAccessError,
)

logger = logging.getLogger(__name__)

_STATUS: Dict[Type[TodoTrackerError], int] = {
    AccountNotFoundError: status.HTTP_401_UNAUTHORIZED,
    AccountAlreadyExistsError: status.HTTP_409_CONFLICT,
    TaskNotFoundError: status.HTTP_404_NOT_FOUND,
    UnauthorizedAccessError: status.HTTP_403_FORBIDDEN,
    InvalidInputError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidExtensionError: status.HTTP_400_BAD_REQUEST,
    ExtensionNotAllowedError: status.HTTP_409_CONFLICT,
}


# PUBLIC_INTERFACE
def status_for(exc: TodoTrackerError) -> int:
    """HTTP status code for a typed failure; 400 for kinds without a dedicated mapping."""
    for kind in type(exc).__mro__:
        if kind in _STATUS:
            return _STATUS[kind]
    return status.HTTP_400_BAD_REQUEST


def register_exception_handlers(app: FastAPI) -> None:
    """
    Install handlers that turn failures into a consistent JSON body:

        {"error": "<kind>", "message": "<text>"}

    Request validation errors additionally carry ``detail``. Anything that is
    not a typed failure is logged with its traceback and answered with 500.
    """

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(TodoTrackerError)
    async def todo_tracker_exception_handler(request: Request, exc: TodoTrackerError) -> JSONResponse:
        code = status_for(exc)
        logger.warning("%s on %s %s: %s", exc.error, request.method, request.url.path, exc.message)
        content = {"error": exc.error, "message": exc.message}
        if isinstance(exc, ExtensionNotAllowedError):
            content["reason"] = exc.reason.value
        return JSONResponse(status_code=code, content=content)

    @app.exception_handler(Exception)
    async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unexpected error on %s %s: %s", request.method, request.url.path, type(exc).__name__, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "SystemError", "message": "An unexpected error occurred, please try again later"},
        )
