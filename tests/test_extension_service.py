from datetime import date, timedelta

import pytest

from todo_tracker.errors import (
    AccountNotFoundError,
    ExtensionNotAllowedError,
    IneligibilityReason,
    InvalidExtensionError,
    TaskNotFoundError,
    UnauthorizedAccessError,
)
from todo_tracker.models import Task

from .conftest import NOW

TODAY = NOW.date()


@pytest.fixture()
def make_todo(todo_service, alice):
    def _make(offset_days: int, title: str = "Renew passport", username: str = "alice") -> Task:
        return todo_service.create_todo(title, None, TODAY + timedelta(days=offset_days), username)

    return _make


class TestEligibility:
    @pytest.mark.parametrize("offset", [0, 1, 2, 3])
    def test_inside_window(self, extension_service, make_todo, offset):
        assert extension_service.is_eligible_for_extension(make_todo(offset))

    @pytest.mark.parametrize(
        "offset,reason",
        [(-1, IneligibilityReason.OVERDUE), (4, IneligibilityReason.BEYOND_WINDOW)],
    )
    def test_outside_window(self, extension_service, make_todo, offset, reason):
        todo = make_todo(offset)
        assert not extension_service.is_eligible_for_extension(todo)
        assert extension_service.ineligibility_reason(todo) is reason

    def test_none_is_not_eligible(self, extension_service):
        assert extension_service.is_eligible_for_extension(None) is False

    def test_completed(self, extension_service, todo_service, make_todo):
        todo = todo_service.toggle_todo(make_todo(1).id, "alice")
        assert extension_service.ineligibility_reason(todo) is IneligibilityReason.COMPLETED


class TestValidateExtensionDays:
    @pytest.mark.parametrize("days", [1, 30, 365])
    def test_accepted(self, extension_service, days):
        extension_service.validate_extension_days(days)

    @pytest.mark.parametrize("days", [0, -5, 366])
    def test_rejected(self, extension_service, days):
        with pytest.raises(InvalidExtensionError):
            extension_service.validate_extension_days(days)


class TestExtendTodo:
    def test_first_extension(self, extension_service, make_todo):
        todo = make_todo(1)
        extended = extension_service.extend_todo(todo.id, 5, "alice")
        assert extended.due_date == TODAY + timedelta(days=6)
        assert extended.original_due_date == TODAY + timedelta(days=1)
        assert extended.extension_count == 1
        assert extended.last_extended_at == NOW
        assert extended.total_extension_days == 5

    def test_is_persisted(self, extension_service, todo_service, make_todo):
        todo = make_todo(0)
        extension_service.extend_todo(todo.id, 2, "alice")
        stored = todo_service.find_todo(todo.id, "alice")
        assert stored.due_date == TODAY + timedelta(days=2)
        assert stored.extension_count == 1

    def test_second_extension_keeps_original_due_date(self, extension_service, clock, make_todo):
        todo = make_todo(0)
        extension_service.extend_todo(todo.id, 2, "alice")
        clock.advance(seconds=30)
        extended = extension_service.extend_todo(todo.id, 3, "alice")
        assert extended.due_date == TODAY + timedelta(days=5)
        assert extended.original_due_date == TODAY
        assert extended.extension_count == 2
        assert extended.last_extended_at == NOW + timedelta(seconds=30)
        assert extended.total_extension_days == 5

    @pytest.mark.parametrize("days", [0, -1, 366])
    def test_invalid_days_rejected_before_any_lookup(self, extension_service, tasks, make_todo, days):
        todo = make_todo(1)
        tasks.lookups.clear()
        with pytest.raises(InvalidExtensionError):
            extension_service.extend_todo(todo.id, days, "alice")
        assert tasks.lookups == []

    def test_invalid_days_win_over_unknown_account(self, extension_service, tasks):
        with pytest.raises(InvalidExtensionError):
            extension_service.extend_todo(1, 0, "nobody")
        assert tasks.lookups == []

    def test_unknown_account(self, extension_service):
        with pytest.raises(AccountNotFoundError):
            extension_service.extend_todo(1, 2, "nobody")

    def test_missing_todo(self, extension_service, alice):
        with pytest.raises(TaskNotFoundError):
            extension_service.extend_todo(999, 2, "alice")

    def test_foreign_todo_is_left_untouched(self, extension_service, todo_service, make_todo, bob):
        todo = make_todo(1)
        with pytest.raises(UnauthorizedAccessError):
            extension_service.extend_todo(todo.id, 2, "bob")
        stored = todo_service.find_todo(todo.id, "alice")
        assert stored.due_date == TODAY + timedelta(days=1)
        assert stored.extension_count == 0

    def test_ownership_checked_before_eligibility(self, extension_service, make_todo, bob):
        todo = make_todo(30)
        with pytest.raises(UnauthorizedAccessError):
            extension_service.extend_todo(todo.id, 2, "bob")

    def test_completed_todo(self, extension_service, todo_service, make_todo):
        todo = make_todo(1)
        todo_service.toggle_todo(todo.id, "alice")
        with pytest.raises(ExtensionNotAllowedError) as exc_info:
            extension_service.extend_todo(todo.id, 2, "alice")
        assert exc_info.value.reason is IneligibilityReason.COMPLETED
        assert "already completed" in exc_info.value.message

    def test_overdue_todo(self, extension_service, make_todo):
        todo = make_todo(-1)
        with pytest.raises(ExtensionNotAllowedError) as exc_info:
            extension_service.extend_todo(todo.id, 2, "alice")
        assert exc_info.value.reason is IneligibilityReason.OVERDUE

    def test_beyond_window(self, extension_service, todo_service, make_todo):
        todo = make_todo(4)
        with pytest.raises(ExtensionNotAllowedError) as exc_info:
            extension_service.extend_todo(todo.id, 2, "alice")
        assert exc_info.value.reason is IneligibilityReason.BEYOND_WINDOW
        assert todo_service.find_todo(todo.id, "alice").extension_count == 0

    def test_completed_reason_reported_for_old_completed_todo(self, extension_service, todo_service, make_todo):
        todo = make_todo(-10)
        todo_service.toggle_todo(todo.id, "alice")
        with pytest.raises(ExtensionNotAllowedError) as exc_info:
            extension_service.extend_todo(todo.id, 2, "alice")
        assert exc_info.value.reason is IneligibilityReason.COMPLETED


class TestRenewPassportScenario:
    def test_due_in_two_days_extended_by_three(self, extension_service, make_todo):
        todo = make_todo(2, title="Renew passport")

        extended = extension_service.extend_todo(todo.id, 3, "alice")

        assert extended.due_date == TODAY + timedelta(days=5)
        assert extended.original_due_date == TODAY + timedelta(days=2)
        assert extended.extension_count == 1
        assert extended.completed is False

        # Due in five days now, past the three-day window.
        with pytest.raises(ExtensionNotAllowedError) as exc_info:
            extension_service.extend_todo(todo.id, 10, "alice")
        assert exc_info.value.reason is IneligibilityReason.BEYOND_WINDOW
        assert "beyond" in exc_info.value.message

    def test_immediate_second_extension_leaves_the_window(self, extension_service, make_todo):
        todo = make_todo(1)
        first = extension_service.extend_todo(todo.id, 5, "alice")
        assert first.due_date == TODAY + timedelta(days=6)

        with pytest.raises(ExtensionNotAllowedError) as exc_info:
            extension_service.extend_todo(todo.id, 10, "alice")
        assert exc_info.value.reason is IneligibilityReason.BEYOND_WINDOW

    def test_extending_again_once_due_date_is_near(self, extension_service, clock, make_todo):
        todo = make_todo(1)
        extension_service.extend_todo(todo.id, 5, "alice")

        clock.advance(days=3)
        second = extension_service.extend_todo(todo.id, 10, "alice")
        assert second.due_date == TODAY + timedelta(days=16)
        assert second.original_due_date == TODAY + timedelta(days=1)
        assert second.extension_count == 2
        assert second.total_extension_days == 15

        with pytest.raises(ExtensionNotAllowedError) as exc_info:
            extension_service.extend_todo(todo.id, 1, "alice")
        assert exc_info.value.reason is IneligibilityReason.BEYOND_WINDOW


class TestPreview:
    def test_preview_saves_nothing(self, extension_service, todo_service, make_todo):
        todo = make_todo(2)
        preview = extension_service.preview_extension(todo.id, "alice", 7)
        assert preview.current_due_date == TODAY + timedelta(days=2)
        assert preview.new_due_date == TODAY + timedelta(days=9)
        assert preview.extension_days == 7
        stored = todo_service.find_todo(todo.id, "alice")
        assert stored.due_date == TODAY + timedelta(days=2)
        assert stored.extension_count == 0

    def test_preview_does_not_require_eligibility(self, extension_service, make_todo):
        todo = make_todo(20)
        assert extension_service.preview_extension(todo.id, "alice", 1).new_due_date == TODAY + timedelta(days=21)

    def test_preview_checks_ownership_before_days(self, extension_service, make_todo, bob):
        todo = make_todo(1)
        with pytest.raises(UnauthorizedAccessError):
            extension_service.preview_extension(todo.id, "bob", 0)

    def test_preview_past_max_date_is_invalid_extension(self, extension_service, todo_service, alice):
        todo = todo_service.create_todo("Far future", None, date.max - timedelta(days=1), "alice")
        with pytest.raises(InvalidExtensionError):
            extension_service.preview_extension(todo.id, "alice", 5)

    def test_preview_rejects_bad_days(self, extension_service, make_todo):
        todo = make_todo(1)
        with pytest.raises(InvalidExtensionError):
            extension_service.preview_extension(todo.id, "alice", 366)


class TestExtensionForm:
    def test_form_for_eligible_todo(self, extension_service, make_todo):
        todo = make_todo(3, title="File taxes")
        form = extension_service.get_extension_form(todo.id, "alice")
        assert form.task_id == todo.id
        assert form.title == "File taxes"
        assert form.current_due_date == TODAY + timedelta(days=3)
        assert form.max_extension_days == 365

    def test_form_for_ineligible_todo(self, extension_service, make_todo):
        todo = make_todo(10)
        with pytest.raises(ExtensionNotAllowedError):
            extension_service.get_extension_form(todo.id, "alice")

    def test_form_for_foreign_todo(self, extension_service, make_todo, bob):
        todo = make_todo(1)
        with pytest.raises(UnauthorizedAccessError):
            extension_service.get_extension_form(todo.id, "bob")


class TestEligibleTodos:
    def test_lists_only_eligible_own_todos(self, extension_service, todo_service, make_todo, bob):
        make_todo(-1, title="overdue")
        make_todo(0, title="today")
        make_todo(3, title="in three days")
        make_todo(4, title="in four days")
        done = make_todo(1, title="done")
        todo_service.toggle_todo(done.id, "alice")
        todo_service.create_todo("bob's", None, TODAY, "bob")

        titles = sorted(t.title for t in extension_service.get_eligible_todos("alice"))
        assert titles == ["in three days", "today"]
