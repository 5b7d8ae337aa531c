"""
Tests for the due-job selector.
"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_schedule
from prnudge.features.schedules.due import (
    InvalidCronExpressionError,
    get_previous_fire_time,
    is_due,
    select_due_schedules,
)


def at(hour: int, minute: int, second: int = 0) -> datetime:
    return datetime(2026, 3, 2, hour, minute, second, tzinfo=timezone.utc)


class TestPreviousFireTime:
    """Test cases for get_previous_fire_time."""

    def test_fire_time_equal_to_now_is_included(self):
        assert get_previous_fire_time("0 9 * * *", at(9, 0)) == at(9, 0)

    def test_seconds_are_ignored(self):
        assert get_previous_fire_time("0 9 * * *", at(9, 0, 42)) == at(9, 0)

    def test_returns_earlier_fire_time(self):
        assert get_previous_fire_time("*/15 * * * *", at(9, 7)) == at(9, 0)

    @pytest.mark.parametrize(
        "expression", ["0 9 * *", "0 9 * * * *", "not a cron", "61 9 * * *", ""]
    )
    def test_invalid_expressions_raise(self, expression):
        with pytest.raises(InvalidCronExpressionError):
            get_previous_fire_time(expression, at(9, 0))

    def test_invalid_expression_is_value_error(self):
        with pytest.raises(ValueError):
            get_previous_fire_time("99 99 * * *", at(9, 0))


class TestIsDue:
    """Test cases for is_due."""

    def test_due_at_fire_minute_when_never_executed(self):
        assert is_due(make_schedule(cron_expression="0 9 * * *"), at(9, 0, 30))

    def test_not_due_outside_fire_minute(self):
        schedule = make_schedule(cron_expression="0 9 * * *")

        assert not is_due(schedule, at(9, 1))
        assert not is_due(schedule, at(8, 59))

    def test_not_due_again_after_execution_in_same_minute(self):
        schedule = make_schedule(
            cron_expression="0 9 * * *", last_executed_at=at(9, 0)
        )

        assert not is_due(schedule, at(9, 0, 45))

    def test_due_when_last_execution_was_previous_fire(self):
        schedule = make_schedule(
            cron_expression="0 9 * * *", last_executed_at=at(9, 0) - timedelta(days=1)
        )

        assert is_due(schedule, at(9, 0))

    def test_naive_last_executed_is_treated_as_utc(self):
        schedule = make_schedule(
            cron_expression="0 9 * * *", last_executed_at=datetime(2026, 3, 2, 9, 0)
        )

        assert not is_due(schedule, at(9, 0))


class TestSelectDueSchedules:
    """Test cases for select_due_schedules."""

    def test_selects_only_due_active_schedules(self):
        due = make_schedule(name="due", cron_expression="0 9 * * *")
        not_due = make_schedule(name="later", cron_expression="0 10 * * *")
        inactive = make_schedule(
            name="inactive", cron_expression="0 9 * * *", is_active=False
        )

        result = select_due_schedules([due, not_due, inactive], at(9, 0))

        assert [s.name for s in result] == ["due"]

    def test_invalid_cron_is_skipped_without_affecting_others(self):
        broken = make_schedule(name="broken", cron_expression="every morning")
        good = make_schedule(name="good", cron_expression="* * * * *")

        result = select_due_schedules([broken, good], at(9, 0))

        assert [s.name for s in result] == ["good"]

    def test_second_tick_in_same_minute_selects_nothing(self):
        schedule = make_schedule(cron_expression="0 9 * * *")

        assert select_due_schedules([schedule], at(9, 0, 5)) == [schedule]

        executed = schedule.model_copy(update={"last_executed_at": at(9, 0, 5)})
        assert select_due_schedules([executed], at(9, 0, 50)) == []
