from __future__ import annotations

from datetime import datetime

import pytest

from todo_tracker.account_service import AccountService
from todo_tracker.date_policy import DatePolicy
from todo_tracker.extension_service import ExtensionService
from todo_tracker.repositories import InMemoryAccountRepository
from todo_tracker.todo_service import TodoService

from .fakes import FakeClock, PlainCredentialVerifier, RecordingTaskRepository

# A Monday, chosen so "today + n" never crosses a month boundary by accident.
NOW = datetime(2024, 6, 10, 9, 30, 0)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def accounts(clock: FakeClock) -> InMemoryAccountRepository:
    return InMemoryAccountRepository(clock)


@pytest.fixture()
def tasks(clock: FakeClock) -> RecordingTaskRepository:
    return RecordingTaskRepository(clock)


@pytest.fixture()
def alice(accounts: InMemoryAccountRepository):
    return accounts.add("alice", "plain$alice-pw")


@pytest.fixture()
def bob(accounts: InMemoryAccountRepository):
    return accounts.add("bob", "plain$bob-pw")


@pytest.fixture()
def todo_service(accounts, tasks, clock) -> TodoService:
    return TodoService(accounts, tasks, clock)


@pytest.fixture()
def extension_service(accounts, tasks, clock) -> ExtensionService:
    return ExtensionService(accounts, tasks, DatePolicy(clock), clock)


@pytest.fixture()
def account_service(accounts, tasks) -> AccountService:
    return AccountService(accounts, tasks, PlainCredentialVerifier())
