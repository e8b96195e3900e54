"""Tests for the clock-out compliance cross-check."""

import pytest
from datetime import date, datetime, timezone

from dateutil import tz

from compliance.clock_out import ClockOutValidator
from compliance.types import BreakEntry, ClockOutContext, RuleId, Severity, TimeEntry


RULE_ORDER = [
    RuleId.DAILY_LIMIT,
    RuleId.WEEKLY_LIMIT,
    RuleId.REST_PERIOD,
    RuleId.REST_PERIOD_BEFORE,
    RuleId.MANDATORY_BREAK,
    RuleId.CONTINUOUS_WORK,
    RuleId.WEEKLY_REST,
    RuleId.NIGHT_WORK,
    RuleId.OVERTIME,
    RuleId.WEEKLY_ABSOLUTE_MAX,
    RuleId.ADOLESCENT_RESTRICTIONS,
    RuleId.PREGNANT_WORKER,
]


def entry(id, clock_in, clock_out=None, break_minutes=0):
    return TimeEntry(
        id=id,
        clock_in=datetime.fromisoformat(clock_in),
        clock_out=datetime.fromisoformat(clock_out) if clock_out else None,
        break_minutes=break_minutes,
    )


def pause(entry_id, start, end=None, id="brk"):
    return BreakEntry(
        id=id,
        time_entry_id=entry_id,
        break_start=datetime.fromisoformat(start),
        break_end=datetime.fromisoformat(end) if end else None,
    )


@pytest.fixture
def run_checks(rules):
    def _run(current, others=(), breaks=(), validator=None, **kwargs):
        context = ClockOutContext(
            current_entry=current,
            all_entries=list(others),
            breaks=list(breaks),
            rules=rules,
            **kwargs,
        )
        checks = (validator or ClockOutValidator()).validate_all(context)
        return {c.rule: c for c in checks}, checks
    return _run


class TestClockOutValidator:
    def test_compliant_day_passes_every_rule(self, run_checks):
        current = entry("e1", "2025-01-20T09:00", "2025-01-20T17:00")
        by_rule, checks = run_checks(current, breaks=[pause("e1", "2025-01-20T13:00", "2025-01-20T13:30")])

        assert [c.rule for c in checks] == RULE_ORDER
        assert all(c.passed for c in checks)
        assert not any(c.is_blocking for c in checks)

    def test_daily_limit_severity_grows_with_excess(self, run_checks):
        by_rule, _ = run_checks(entry("e1", "2025-01-20T08:00", "2025-01-20T18:00"))
        assert not by_rule[RuleId.DAILY_LIMIT].passed
        assert by_rule[RuleId.DAILY_LIMIT].severity == Severity.HIGH

        by_rule, _ = run_checks(entry("e1", "2025-01-20T07:00", "2025-01-20T19:00"))
        assert by_rule[RuleId.DAILY_LIMIT].severity == Severity.CRITICAL
        assert by_rule[RuleId.DAILY_LIMIT].is_blocking

    def test_weekly_limit_is_not_blocking(self, run_checks):
        week = [entry(f"d{d}", f"2025-01-2{d}T08:00", f"2025-01-2{d}T17:00") for d in range(0, 4)]
        current = entry("d4", "2025-01-24T08:00", "2025-01-24T17:00")

        by_rule, _ = run_checks(current, week)

        weekly = by_rule[RuleId.WEEKLY_LIMIT]
        assert not weekly.passed
        assert weekly.severity == Severity.MEDIUM
        assert not weekly.is_blocking
        assert "45.0h" in weekly.message
        assert by_rule[RuleId.WEEKLY_ABSOLUTE_MAX].passed

    def test_rest_after_previous_entry(self, run_checks):
        previous = entry("e0", "2025-01-20T14:00", "2025-01-20T22:00")
        current = entry("e1", "2025-01-21T06:00", "2025-01-21T11:00")

        by_rule, _ = run_checks(current, [previous, current])

        assert not by_rule[RuleId.REST_PERIOD].passed
        assert "8.0h rest" in by_rule[RuleId.REST_PERIOD].message
        assert by_rule[RuleId.REST_PERIOD_BEFORE].passed

    def test_rest_before_next_entry_assumes_open_shift_length(self, run_checks):
        current = entry("e1", "2025-01-21T06:00")
        following = entry("e2", "2025-01-21T20:00", "2025-01-21T23:00")

        by_rule, _ = run_checks(current, [following])

        before = by_rule[RuleId.REST_PERIOD_BEFORE]
        assert not before.passed
        assert "6.0h rest" in before.message
        assert by_rule[RuleId.REST_PERIOD].passed
        assert by_rule[RuleId.MANDATORY_BREAK].message == "Shift not yet complete"

    def test_mandatory_break_missing(self, run_checks):
        current = entry("e1", "2025-01-20T07:00", "2025-01-20T15:00")
        other_entry_break = pause("e0", "2025-01-19T12:00", "2025-01-19T12:30")

        by_rule, _ = run_checks(current, breaks=[other_entry_break])

        check = by_rule[RuleId.MANDATORY_BREAK]
        assert not check.passed
        assert check.severity == Severity.HIGH
        assert check.is_blocking
        assert "(current: 0min)" in check.message

    def test_short_shift_needs_no_break(self, run_checks):
        by_rule, _ = run_checks(entry("e1", "2025-01-20T09:00", "2025-01-20T15:00"))
        assert by_rule[RuleId.MANDATORY_BREAK].passed

    def test_continuous_work_segment_too_long(self, run_checks):
        current = entry("e1", "2025-01-20T08:00", "2025-01-20T19:00", break_minutes=15)
        by_rule, _ = run_checks(current, breaks=[pause("e1", "2025-01-20T08:30", "2025-01-20T08:45")])

        assert by_rule[RuleId.MANDATORY_BREAK].passed
        check = by_rule[RuleId.CONTINUOUS_WORK]
        assert not check.passed
        assert "10.2h" in check.message

    def test_open_break_is_not_a_break(self, run_checks):
        current = entry("e1", "2025-01-20T08:00", "2025-01-20T18:00")
        by_rule, _ = run_checks(current, breaks=[pause("e1", "2025-01-20T12:00")])

        assert not by_rule[RuleId.MANDATORY_BREAK].passed
        assert not by_rule[RuleId.CONTINUOUS_WORK].passed

    def test_weekly_rest_counts_from_start_of_week(self, run_checks):
        others = [entry("tue", "2025-01-21T11:00", "2025-01-21T19:00")]
        others += [entry(f"d{d}", f"2025-01-2{d}T10:00", f"2025-01-2{d}T18:00") for d in range(2, 6)]
        current = entry("sun", "2025-01-26T10:00", "2025-01-26T18:00")

        by_rule, _ = run_checks(current, others)

        # Monday 00:00 to Tuesday 11:00
        assert by_rule[RuleId.WEEKLY_REST].passed
        assert "35.0h" in by_rule[RuleId.WEEKLY_REST].message

    def test_weekly_rest_missing(self, run_checks):
        others = [entry(f"d{d}", f"2025-01-2{d}T10:00", f"2025-01-2{d}T18:00") for d in range(0, 6)]
        current = entry("sun", "2025-01-26T10:00", "2025-01-26T18:00")

        by_rule, _ = run_checks(current, others)

        check = by_rule[RuleId.WEEKLY_REST]
        assert not check.passed
        assert check.severity == Severity.CRITICAL
        assert check.rule_reference == "Estatuto Art. 37.1"

    def test_absolute_weekly_maximum(self, run_checks):
        others = [entry(f"d{d}", f"2025-01-2{d}T08:00", f"2025-01-2{d}T17:00") for d in range(0, 5)]
        current = entry("sat", "2025-01-25T08:00", "2025-01-25T17:00")

        by_rule, _ = run_checks(current, others)

        check = by_rule[RuleId.WEEKLY_ABSOLUTE_MAX]
        assert not check.passed
        assert check.severity == Severity.CRITICAL
        assert "54.0h" in check.message

    def test_adolescent_daily_limit_from_date_of_birth(self, run_checks):
        current = entry("e1", "2025-01-20T08:00", "2025-01-20T16:30")

        by_rule, _ = run_checks(current, date_of_birth=date(2008, 6, 1))

        check = by_rule[RuleId.ADOLESCENT_RESTRICTIONS]
        assert not check.passed
        assert check.severity == Severity.CRITICAL
        assert "8.5h" in check.message

    def test_adolescent_weekly_limit(self, run_checks):
        others = [entry(f"d{d}", f"2025-01-2{d}T09:00", f"2025-01-2{d}T16:00") for d in range(0, 5)]
        current = entry("sat", "2025-01-25T09:00", "2025-01-25T16:00")

        by_rule, _ = run_checks(current, others, user_age=17)

        check = by_rule[RuleId.ADOLESCENT_RESTRICTIONS]
        assert not check.passed
        assert "Adolescent weekly hours (42.0h)" in check.message

    def test_adults_are_not_restricted(self, run_checks):
        current = entry("e1", "2025-01-20T08:00", "2025-01-20T16:30")
        by_rule, _ = run_checks(current, user_age=18)
        assert by_rule[RuleId.ADOLESCENT_RESTRICTIONS].passed

    def test_current_entry_replaces_stored_copy(self, run_checks):
        stale = entry("e1", "2025-01-20T08:00")
        current = entry("e1", "2025-01-20T08:00", "2025-01-20T16:00")

        by_rule, _ = run_checks(current, [stale])

        assert "8.0h" in by_rule[RuleId.DAILY_LIMIT].message
        assert by_rule[RuleId.REST_PERIOD_BEFORE].passed

    def test_week_is_taken_in_local_time(self, run_checks):
        # Sunday 23:30 UTC is already Monday in Madrid
        current = TimeEntry(
            id="mon",
            clock_in=datetime(2025, 1, 19, 23, 30, tzinfo=timezone.utc),
            clock_out=datetime(2025, 1, 20, 7, 30, tzinfo=timezone.utc),
        )
        sunday = TimeEntry(
            id="sun",
            clock_in=datetime(2025, 1, 19, 8, 0, tzinfo=timezone.utc),
            clock_out=datetime(2025, 1, 19, 17, 0, tzinfo=timezone.utc),
        )

        local, _ = run_checks(current, [sunday], validator=ClockOutValidator(tz.gettz("Europe/Madrid")))
        utc, _ = run_checks(current, [sunday])

        assert "(8.0h)" in local[RuleId.WEEKLY_LIMIT].message
        assert "(17.0h)" in utc[RuleId.WEEKLY_LIMIT].message

    def test_weekly_rest_still_possible_later_in_the_week(self, run_checks):
        by_rule, _ = run_checks(entry("mon", "2025-01-20T09:00", "2025-01-20T17:00"))

        check = by_rule[RuleId.WEEKLY_REST]
        assert check.passed
        assert "max so far: 9.0h" in check.message
        assert "remain this week" in check.message
        assert check.recommended_action is not None

    def test_night_work_limit(self, run_checks):
        by_rule, _ = run_checks(entry("e1", "2025-01-20T20:00", "2025-01-21T06:00"))

        check = by_rule[RuleId.NIGHT_WORK]
        assert not check.passed
        assert check.severity == Severity.HIGH
        assert "10.0h" in check.message
        assert check.rule_reference == "Estatuto Art. 36"

    @pytest.mark.parametrize("clock_in, clock_out, hours", [
        ("2025-01-20T22:00", "2025-01-21T06:00", "8.0h"),
        ("2025-01-20T09:00", "2025-01-20T17:00", "0.0h"),
        ("2025-01-21T04:00", "2025-01-21T12:00", "2.0h"),
    ])
    def test_night_work_within_limit(self, run_checks, clock_in, clock_out, hours):
        by_rule, _ = run_checks(entry("e1", clock_in, clock_out))

        check = by_rule[RuleId.NIGHT_WORK]
        assert check.passed
        assert f"({hours})" in check.message

    def test_overtime_is_tracked_below_absolute_maximum(self, run_checks):
        week = [entry(f"d{d}", f"2025-01-2{d}T08:00", f"2025-01-2{d}T17:00") for d in range(0, 4)]
        current = entry("d4", "2025-01-24T08:00", "2025-01-24T17:00")

        by_rule, _ = run_checks(current, week)

        check = by_rule[RuleId.OVERTIME]
        assert check.passed
        assert check.severity == Severity.LOW
        assert check.outcome is None
        assert not check.is_blocking
        assert check.message == "Overtime tracked: 5.0h (within legal limit)"

    def test_overtime_past_absolute_maximum(self, run_checks):
        others = [entry(f"d{d}", f"2025-01-2{d}T08:00", f"2025-01-2{d}T17:00") for d in range(0, 5)]
        current = entry("sat", "2025-01-25T08:00", "2025-01-25T17:00")

        by_rule, _ = run_checks(current, others)

        check = by_rule[RuleId.OVERTIME]
        assert not check.passed
        assert check.severity == Severity.CRITICAL
        assert check.is_blocking
        assert "Overtime (14.0h)" in check.message

    def test_pregnant_worker_night_shift(self, run_checks):
        current = entry("e1", "2025-01-20T21:00", "2025-01-20T23:00")

        by_rule, _ = run_checks(current, is_pregnant=True)

        check = by_rule[RuleId.PREGNANT_WORKER]
        assert not check.passed
        assert check.severity == Severity.CRITICAL
        assert check.rule_reference == "Ley 31/1995 Art. 26"

    def test_pregnant_worker_clocking_out_at_night(self, run_checks):
        current = entry("e1", "2025-01-20T14:00", "2025-01-20T20:30")

        by_rule, _ = run_checks(current, is_pregnant=True)

        assert not by_rule[RuleId.PREGNANT_WORKER].passed

    def test_pregnant_worker_day_shift(self, run_checks):
        current = entry("e1", "2025-01-20T09:00", "2025-01-20T17:00")

        pregnant, _ = run_checks(current, is_pregnant=True)
        other, _ = run_checks(current)

        assert pregnant[RuleId.PREGNANT_WORKER].passed
        assert pregnant[RuleId.PREGNANT_WORKER].message == "Pregnant worker protections met"
        assert other[RuleId.PREGNANT_WORKER].message == "Not applicable"

    def test_night_hours_follow_local_time(self, run_checks):
        # 19:00-05:00 UTC is 20:00-06:00 in Madrid
        current = TimeEntry(
            id="night",
            clock_in=datetime(2025, 1, 20, 19, 0, tzinfo=timezone.utc),
            clock_out=datetime(2025, 1, 21, 5, 0, tzinfo=timezone.utc),
        )

        local, _ = run_checks(current, validator=ClockOutValidator(tz.gettz("Europe/Madrid")))
        utc, _ = run_checks(current)

        assert "(10.0h)" in local[RuleId.NIGHT_WORK].message
        assert "(9.0h)" in utc[RuleId.NIGHT_WORK].message
