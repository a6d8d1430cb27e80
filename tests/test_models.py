from datetime import date, datetime, timedelta

import pytest

from todo_tracker.errors import IneligibilityReason, InvalidExtensionError
from todo_tracker.models import Account, Task

TODAY = date(2024, 6, 10)
NOW = datetime(2024, 6, 10, 9, 30)


def make_task(due: date = TODAY, **kwargs) -> Task:
    kwargs.setdefault("title", "Write report")
    return Task(due_date=due, owner_id=1, **kwargs)


class TestIdentity:
    def test_tasks_with_same_id_are_equal(self):
        a = make_task(id=7)
        b = make_task(id=7, title="Something else")
        assert a == b
        assert len({a, b}) == 1

    def test_tasks_with_different_ids_are_not_equal(self):
        assert make_task(id=1) != make_task(id=2)

    def test_unsaved_task_equals_nothing(self):
        a = make_task()
        b = make_task()
        assert a != b
        assert not a.__eq__(a)

    def test_unsaved_account_equals_nothing(self):
        a = Account(username="alice", password_hash="x")
        assert a != Account(username="alice", password_hash="x")
        assert Account(username="a", password_hash="x", id=3) == Account(username="b", password_hash="y", id=3)

    def test_copy_is_detached(self):
        a = make_task(id=1)
        b = a.copy()
        b.title = "changed"
        assert a.title == "Write report"


class TestCompletion:
    def test_completing_sets_timestamp(self):
        task = make_task()
        task.set_completed(True, NOW)
        assert task.completed is True
        assert task.completed_at == NOW

    def test_completing_twice_keeps_first_timestamp(self):
        task = make_task()
        task.set_completed(True, NOW)
        task.set_completed(True, NOW + timedelta(hours=5))
        assert task.completed_at == NOW

    def test_uncompleting_clears_timestamp(self):
        task = make_task()
        task.set_completed(True, NOW)
        task.set_completed(False, NOW)
        assert task.completed is False
        assert task.completed_at is None

    def test_toggle_flips_and_keeps_invariant(self):
        task = make_task()
        for _ in range(4):
            task.toggle_completed(NOW)
            assert task.completed == (task.completed_at is not None)
        assert task.completed is False


class TestEdit:
    def test_edit_leaves_completion_and_extension_history_alone(self):
        task = make_task(id=1)
        task.set_completed(True, NOW)
        task.set_completed(False, NOW)
        task.extend_due_date(2, NOW)
        task.set_completed(True, NOW)

        task.apply_edit("New title", "New description", date(2024, 7, 1))

        assert task.title == "New title"
        assert task.description == "New description"
        assert task.due_date == date(2024, 7, 1)
        assert task.completed is True
        assert task.completed_at == NOW
        assert task.extension_count == 1
        assert task.original_due_date == TODAY
        assert task.last_extended_at == NOW


class TestDueChecks:
    def test_overdue(self):
        assert make_task(TODAY - timedelta(days=1)).is_overdue(TODAY)
        assert not make_task(TODAY).is_overdue(TODAY)

    def test_completed_is_never_overdue_or_due_soon(self):
        task = make_task(TODAY - timedelta(days=3))
        task.set_completed(True, NOW)
        assert not task.is_overdue(TODAY)
        assert not task.is_due_soon(TODAY)

    def test_due_soon_includes_today_through_three_days_ahead(self):
        assert make_task(TODAY).is_due_soon(TODAY)
        assert make_task(TODAY + timedelta(days=3)).is_due_soon(TODAY)
        assert not make_task(TODAY + timedelta(days=4)).is_due_soon(TODAY)

    def test_overdue_is_not_due_soon(self):
        task = make_task(TODAY - timedelta(days=1))
        assert task.is_overdue(TODAY)
        assert not task.is_due_soon(TODAY)


class TestEligibility:
    @pytest.mark.parametrize("offset", [0, 1, 2, 3])
    def test_due_today_through_three_days_is_eligible(self, offset):
        assert make_task(TODAY + timedelta(days=offset)).is_eligible_for_extension(TODAY)

    def test_due_in_four_days_is_beyond_window(self):
        task = make_task(TODAY + timedelta(days=4))
        assert not task.is_eligible_for_extension(TODAY)
        assert task.extension_ineligibility(TODAY) is IneligibilityReason.BEYOND_WINDOW

    def test_due_yesterday_is_overdue(self):
        task = make_task(TODAY - timedelta(days=1))
        assert not task.is_eligible_for_extension(TODAY)
        assert task.extension_ineligibility(TODAY) is IneligibilityReason.OVERDUE

    def test_completed_task_due_tomorrow_is_not_eligible(self):
        task = make_task(TODAY + timedelta(days=1))
        task.set_completed(True, NOW)
        assert task.extension_ineligibility(TODAY) is IneligibilityReason.COMPLETED

    def test_completed_reason_wins_over_date_reasons(self):
        task = make_task(TODAY - timedelta(days=10))
        task.set_completed(True, NOW)
        assert task.extension_ineligibility(TODAY) is IneligibilityReason.COMPLETED

    def test_missing_due_date(self):
        task = make_task()
        task.due_date = None  # type: ignore[assignment]
        assert task.extension_ineligibility(TODAY) is IneligibilityReason.NO_DUE_DATE


class TestExtendDueDate:
    def test_first_extension_freezes_original_due_date(self):
        task = make_task(TODAY + timedelta(days=1))
        task.extend_due_date(2, NOW)
        assert task.original_due_date == TODAY + timedelta(days=1)
        assert task.due_date == TODAY + timedelta(days=3)
        assert task.extension_count == 1
        assert task.last_extended_at == NOW

    def test_repeated_extensions_accumulate(self):
        task = make_task(TODAY)
        task.extend_due_date(2, NOW)
        later = NOW + timedelta(minutes=1)
        task.extend_due_date(3, later)
        assert task.due_date == TODAY + timedelta(days=5)
        assert task.original_due_date == TODAY
        assert task.extension_count == 2
        assert task.last_extended_at == later
        assert task.total_extension_days == 5

    @pytest.mark.parametrize("days", [0, -1])
    def test_non_positive_days_rejected_without_change(self, days):
        task = make_task(TODAY)
        with pytest.raises(InvalidExtensionError):
            task.extend_due_date(days, NOW)
        assert task.extension_count == 0
        assert task.original_due_date is None
        assert task.due_date == TODAY

    def test_total_extension_days_is_zero_without_history(self):
        assert make_task().total_extension_days == 0
