from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from .account_service import AccountService
from .clock import Clock
from .extension_service import ExtensionService
from .todo_service import TodoService


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Services:
    """Service instances shared by all requests of one application."""

    accounts: AccountService
    todos: TodoService
    extensions: ExtensionService
    clock: Clock


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_account_service(request: Request) -> AccountService:
    return get_services(request).accounts


def get_todo_service(request: Request) -> TodoService:
    return get_services(request).todos


def get_extension_service(request: Request) -> ExtensionService:
    return get_services(request).extensions


def get_clock(request: Request) -> Clock:
    return get_services(request).clock
