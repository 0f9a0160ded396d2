"""CronSchedule parsing and next-run calculation."""

from datetime import UTC, datetime, timedelta

import pytest

from fieldflow.application.services.scheduler import FALLBACK_DELAY, calculate_next_run
from fieldflow.domain.exceptions import CronExpressionException
from fieldflow.domain.value_objects.cron import CRON_MAX_ITERATIONS, CronSchedule


def _at(*args: int) -> datetime:
    return datetime(*args, tzinfo=UTC)


class TestParse:
    def test_star_fields_cover_full_ranges(self) -> None:
        schedule = CronSchedule.parse("* * * * *")
        assert schedule.minutes == frozenset(range(60))
        assert schedule.hours == frozenset(range(24))
        assert schedule.days_of_month == frozenset(range(1, 32))
        assert schedule.months == frozenset(range(1, 13))
        assert schedule.days_of_week == frozenset(range(7))

    def test_lists_ranges_and_steps(self) -> None:
        schedule = CronSchedule.parse("0,30 9-17 */10 1-12/3 1-5")
        assert schedule.minutes == {0, 30}
        assert schedule.hours == set(range(9, 18))
        assert schedule.days_of_month == {10, 20, 30}
        assert schedule.months == {1, 4, 7, 10}
        assert schedule.days_of_week == {1, 2, 3, 4, 5}

    def test_seven_is_sunday(self) -> None:
        assert CronSchedule.parse("0 0 * * 7").days_of_week == {0}

    @pytest.mark.parametrize(
        "expression",
        [
            "",
            "* * * *",
            "* * * * * *",
            "60 * * * *",
            "* 24 * * *",
            "* * 0 * *",
            "* * * 13 *",
            "* * * * 8",
            "*/0 * * * *",
            "a * * * *",
            "5-1 * * * *",
            "1,,2 * * * *",
            "@daily",
        ],
    )
    def test_invalid_expressions_rejected(self, expression: str) -> None:
        with pytest.raises(CronExpressionException):
            CronSchedule.parse(expression)


class TestNextAfter:
    def test_all_star_is_next_whole_minute(self) -> None:
        schedule = CronSchedule.parse("* * * * *")
        for seconds in (0, 1, 29, 59):
            now = _at(2026, 3, 14, 10, 7, seconds, 500)
            assert schedule.next_after(now) == _at(2026, 3, 14, 10, 8)

    def test_every_fifteen_minutes_lands_on_multiples_of_fifteen(self) -> None:
        schedule = CronSchedule.parse("*/15 * * * *")
        now = _at(2026, 1, 1, 0, 0)
        for _ in range(200):
            next_run = schedule.next_after(now)
            assert next_run.minute % 15 == 0
            assert next_run.second == 0
            assert next_run > now
            now = next_run + timedelta(seconds=17)

    def test_day_of_month_and_day_of_week_are_anded(self) -> None:
        # Friday the 13th only.
        schedule = CronSchedule.parse("0 9 13 * 5")
        next_run = schedule.next_after(_at(2026, 1, 1, 0, 0), max_iterations=60 * 24 * 400)
        assert next_run == _at(2026, 2, 13, 9, 0)
        assert next_run.weekday() == 4

    def test_matches_in_the_given_timezone(self) -> None:
        schedule = CronSchedule.parse("0 9 * * *")
        next_run = schedule.next_after(_at(2026, 7, 1, 0, 0), "America/New_York")
        # 09:00 EDT is 13:00 UTC.
        assert next_run == _at(2026, 7, 1, 13, 0)
        assert next_run.tzinfo == UTC

    def test_unknown_timezone_rejected(self) -> None:
        with pytest.raises(CronExpressionException, match="timezone"):
            CronSchedule.parse("* * * * *").next_after(_at(2026, 1, 1), "Mars/Olympus")

    def test_exhausted_search_returns_none(self) -> None:
        # February 30th never exists.
        assert CronSchedule.parse("0 0 30 2 *").next_after(_at(2026, 1, 1)) is None
        assert CRON_MAX_ITERATIONS == 46_080


class TestCalculateNextRun:
    def test_valid_expression(self) -> None:
        assert calculate_next_run("30 8 * * *", _at(2026, 5, 5, 9, 0)) == _at(2026, 5, 6, 8, 30)

    def test_parse_failure_falls_back_to_a_day_later(self) -> None:
        now = _at(2026, 5, 5, 9, 0)
        assert calculate_next_run("not a cron", now) == now + FALLBACK_DELAY

    def test_no_match_within_horizon_falls_back(self) -> None:
        now = _at(2026, 5, 5, 9, 0)
        assert calculate_next_run("0 0 31 2 *", now) == now + timedelta(hours=24)
