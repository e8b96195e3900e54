"""Compliance cross-check run when a time entry is closed (clock-out).

Unlike shift assignment validation, every rule reports a RuleCheck, passing
or not, so the caller can persist the full check list next to the entry.
"""

from datetime import datetime, timedelta, tzinfo
from typing import Optional

from .calendar import day_bounds, hours_between, start_of_day, to_local, week_bounds
from .types import (
    STATUTE_BREAKS,
    STATUTE_DAILY_LIMIT,
    STATUTE_NIGHT_WORK,
    STATUTE_PREGNANT_WORKER,
    STATUTE_REST_PERIOD,
    STATUTE_WEEKLY_LIMIT,
    STATUTE_WEEKLY_REST,
    BreakEntry,
    ClockOutContext,
    ComplianceRules,
    RuleCheck,
    RuleId,
    Severity,
    TimeEntry,
)
from .validators import evaluate_rest_period


def entries_between(entries: list[TimeEntry], start: datetime, end: datetime) -> list[TimeEntry]:
    """Entries clocking in within [start, end]."""
    return [e for e in entries if start <= e.clock_in <= end]


def total_hours(entries: list[TimeEntry]) -> float:
    """Net hours of completed entries. Open entries count as zero."""
    return sum(e.net_hours for e in entries)


def is_night_hour(value: datetime, rules: ComplianceRules) -> bool:
    return value.hour >= rules.night_work_start or value.hour < rules.night_work_end


def night_hours(clock_in: datetime, clock_out: datetime, rules: ComplianceRules) -> float:
    """Hours of [clock_in, clock_out] that fall inside a nightly window, summed over every night touched."""
    total = 0.0
    night = start_of_day(clock_in) - timedelta(days=1)
    while night <= clock_out:
        window_start = night.replace(hour=rules.night_work_start)
        window_end = start_of_day(night + timedelta(days=1)).replace(hour=rules.night_work_end)
        total += hours_between(max(clock_in, window_start), min(clock_out, window_end))
        night += timedelta(days=1)
    return total


class ClockOutValidator:
    """Runs every clock-out rule against one context."""

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz  # Day and week boundaries are taken in this zone

    def validate_all(self, context: ClockOutContext) -> list[RuleCheck]:
        entry = context.current_entry
        entries = self._with_current(context.all_entries, entry)
        entry_breaks = [b for b in context.breaks if b.time_entry_id == entry.id]

        checks = [self.validate_daily_limit(entries, entry.clock_in, context.rules)]
        checks.append(self.validate_weekly_limit(entries, entry.clock_in, context.rules))
        checks.extend(self.validate_rest_period(entry, entries, context.rules))
        checks.append(self.validate_mandatory_break(entry, entry_breaks, context.rules))
        checks.append(self.validate_continuous_work(entry, entry_breaks, context.rules))
        checks.append(self.validate_weekly_rest(entries, entry.clock_in, context.rules))
        checks.append(self.validate_night_work(entry, context.rules))
        checks.append(self.validate_overtime(entries, entry.clock_in, context.rules))
        checks.append(self.validate_absolute_weekly_max(entries, entry.clock_in, context.rules))
        checks.append(self.validate_adolescent_restrictions(entry, entries, context.age, context.rules))
        checks.append(self.validate_pregnant_worker(entry, context.is_pregnant, context.rules))
        return checks

    @staticmethod
    def _with_current(entries: list[TimeEntry], current: TimeEntry) -> list[TimeEntry]:
        """Week entries with the current entry replacing any stored copy of it."""
        return [e for e in entries if e.id != current.id] + [current]

    def validate_daily_limit(self, entries: list[TimeEntry], on: datetime, rules: ComplianceRules) -> RuleCheck:
        hours = total_hours(entries_between(entries, *day_bounds(to_local(on, self.tz))))
        limit = rules.max_daily_hours
        if hours <= limit:
            return RuleCheck(
                rule=RuleId.DAILY_LIMIT,
                passed=True,
                message=f"Daily hours ({hours:.1f}h) within limit",
                rule_reference=STATUTE_DAILY_LIMIT,
            )
        return RuleCheck(
            rule=RuleId.DAILY_LIMIT,
            passed=False,
            severity=Severity.CRITICAL if hours > limit + 2 else Severity.HIGH,
            message=f"Daily hours ({hours:.1f}h) exceed limit of {limit:g}h",
            rule_reference=STATUTE_DAILY_LIMIT,
            recommended_action="Contact your manager for approval and document the exception",
        )

    def validate_weekly_limit(self, entries: list[TimeEntry], on: datetime, rules: ComplianceRules) -> RuleCheck:
        hours = total_hours(entries_between(entries, *week_bounds(to_local(on, self.tz))))
        limit = rules.max_weekly_hours_regular
        if hours <= limit:
            return RuleCheck(
                rule=RuleId.WEEKLY_LIMIT,
                passed=True,
                message=f"Weekly hours ({hours:.1f}h) within regular limit",
                rule_reference=STATUTE_WEEKLY_LIMIT,
            )
        return RuleCheck(
            rule=RuleId.WEEKLY_LIMIT,
            passed=False,
            severity=Severity.MEDIUM if hours > limit + 4 else Severity.LOW,
            message=f"Weekly hours ({hours:.1f}h) exceed regular limit of {limit:g}h",
            rule_reference=STATUTE_WEEKLY_LIMIT,
            recommended_action=(
                f"Hours between {limit:g}h and {rules.max_weekly_hours_absolute:g}h "
                "count as overtime and require compensation"
            ),
        )

    def validate_rest_period(
        self, entry: TimeEntry, entries: list[TimeEntry], rules: ComplianceRules
    ) -> list[RuleCheck]:
        """Rest after the previous entry and before the next one, one check per side."""
        others = [e for e in entries if e.id != entry.id]
        previous = max(
            (e for e in others if e.clock_out is not None and e.clock_out <= entry.clock_in),
            key=lambda e: e.clock_out,
            default=None,
        )
        following = min(
            (e for e in others if e.clock_in >= entry.clock_in),
            key=lambda e: e.clock_in,
            default=None,
        )

        result = evaluate_rest_period(
            entry.clock_in,
            rules,
            previous_end=previous.clock_out if previous else None,
            next_start=following.clock_in if following else None,
            shift_end=entry.clock_out,
        )
        failed = {issue.rule: issue for issue in result.violations}

        checks = []
        for rule, passing in (
            (RuleId.REST_PERIOD, "Rest since previous shift meets minimum requirement"),
            (RuleId.REST_PERIOD_BEFORE, "Rest before next shift meets minimum requirement"),
        ):
            issue = failed.get(rule)
            if issue is None:
                checks.append(RuleCheck(
                    rule=rule,
                    passed=True,
                    message=passing,
                    rule_reference=STATUTE_REST_PERIOD,
                ))
            else:
                checks.append(RuleCheck(
                    rule=rule,
                    passed=False,
                    severity=issue.severity,
                    message=issue.message,
                    rule_reference=issue.rule_reference,
                    recommended_action=(
                        f"Schedule must ensure {rules.min_rest_hours:g} hours between shift end and next shift start"
                    ),
                ))
        return checks

    def validate_mandatory_break(
        self, entry: TimeEntry, breaks: list[BreakEntry], rules: ComplianceRules
    ) -> RuleCheck:
        if entry.clock_out is None:
            return RuleCheck(
                rule=RuleId.MANDATORY_BREAK,
                passed=True,
                message="Shift not yet complete",
                rule_reference=STATUTE_BREAKS,
            )

        shift_hours = hours_between(entry.clock_in, entry.clock_out)
        if shift_hours <= rules.mandatory_break_after_hours:
            return RuleCheck(
                rule=RuleId.MANDATORY_BREAK,
                passed=True,
                message=f"Shift ({shift_hours:.1f}h) does not require mandatory break",
                rule_reference=STATUTE_BREAKS,
            )

        break_minutes = sum(b.minutes for b in breaks)
        if break_minutes >= rules.mandatory_break_minutes:
            return RuleCheck(
                rule=RuleId.MANDATORY_BREAK,
                passed=True,
                message=f"Break time ({break_minutes:.0f}min) meets requirement",
                rule_reference=STATUTE_BREAKS,
            )
        return RuleCheck(
            rule=RuleId.MANDATORY_BREAK,
            passed=False,
            severity=Severity.HIGH,
            message=(
                f"Shift >{rules.mandatory_break_after_hours:g}h requires {rules.mandatory_break_minutes}min break "
                f"(current: {break_minutes:.0f}min)"
            ),
            rule_reference=STATUTE_BREAKS,
            recommended_action="Ensure employee takes mandatory break before end of shift",
        )

    def validate_continuous_work(
        self, entry: TimeEntry, breaks: list[BreakEntry], rules: ComplianceRules
    ) -> RuleCheck:
        if entry.clock_out is None:
            return RuleCheck(
                rule=RuleId.CONTINUOUS_WORK,
                passed=True,
                message="Shift not yet complete",
                rule_reference=STATUTE_BREAKS,
            )

        limit = rules.max_continuous_work_hours
        completed = sorted((b for b in breaks if b.break_end is not None), key=lambda b: b.break_start)

        segment_start = entry.clock_in
        for brk in completed:
            segment = hours_between(segment_start, brk.break_start)
            if segment > limit:
                return self._continuous_failure(segment, limit)
            segment_start = brk.break_end

        segment = hours_between(segment_start, entry.clock_out)
        if segment > limit:
            return self._continuous_failure(segment, limit)

        return RuleCheck(
            rule=RuleId.CONTINUOUS_WORK,
            passed=True,
            message="Continuous work periods within acceptable limits",
            rule_reference=STATUTE_BREAKS,
        )

    @staticmethod
    def _continuous_failure(segment: float, limit: float) -> RuleCheck:
        return RuleCheck(
            rule=RuleId.CONTINUOUS_WORK,
            passed=False,
            severity=Severity.HIGH,
            message=f"Continuous work segment ({segment:.1f}h) exceeds {limit:g}h without break",
            rule_reference=STATUTE_BREAKS,
            recommended_action="Schedule break within continuous work period",
        )

    def validate_weekly_rest(self, entries: list[TimeEntry], on: datetime, rules: ComplianceRules) -> RuleCheck:
        """Longest uninterrupted rest in the week, counting from and to the week boundaries."""
        week_start, week_end = week_bounds(to_local(on, self.tz))
        worked = sorted(
            (e for e in entries_between(entries, week_start, week_end) if e.clock_out is not None),
            key=lambda e: e.clock_in,
        )
        if not worked:
            return RuleCheck(
                rule=RuleId.WEEKLY_REST,
                passed=True,
                message="No completed shifts this week",
                rule_reference=STATUTE_WEEKLY_REST,
            )

        # Rest already taken: from Monday 00:00 and between recorded entries
        longest = hours_between(week_start, worked[0].clock_in)
        last_end = worked[0].clock_out
        for e in worked[1:]:
            longest = max(longest, hours_between(last_end, e.clock_in))
            last_end = max(last_end, e.clock_out)

        minimum = rules.min_weekly_rest_hours
        if longest >= minimum:
            return RuleCheck(
                rule=RuleId.WEEKLY_REST,
                passed=True,
                message=f"Weekly rest period ({longest:.1f}h) meets requirement",
                rule_reference=STATUTE_WEEKLY_REST,
            )

        # Remaining week counts only as long as no further work is recorded
        remaining = hours_between(last_end, week_end)
        if remaining >= minimum:
            return RuleCheck(
                rule=RuleId.WEEKLY_REST,
                passed=True,
                message=(
                    f"Weekly rest not yet taken (max so far: {longest:.1f}h); "
                    f"{remaining:.1f}h remain this week if no further work is recorded"
                ),
                rule_reference=STATUTE_WEEKLY_REST,
                recommended_action=f"Keep {minimum:g} continuous hours free before the end of the week",
            )
        return RuleCheck(
            rule=RuleId.WEEKLY_REST,
            passed=False,
            severity=Severity.CRITICAL,
            message=f"No {minimum:g}h continuous rest period found (max: {max(longest, remaining):.1f}h)",
            rule_reference=STATUTE_WEEKLY_REST,
            recommended_action=f"Schedule must include {minimum:g} continuous hours rest per week",
        )

    def validate_night_work(self, entry: TimeEntry, rules: ComplianceRules) -> RuleCheck:
        if entry.clock_out is None:
            return RuleCheck(
                rule=RuleId.NIGHT_WORK,
                passed=True,
                message="Shift not yet complete",
                rule_reference=STATUTE_NIGHT_WORK,
            )

        hours = night_hours(to_local(entry.clock_in, self.tz), to_local(entry.clock_out, self.tz), rules)
        limit = rules.max_night_work_hours
        if hours <= limit:
            return RuleCheck(
                rule=RuleId.NIGHT_WORK,
                passed=True,
                message=f"Night work hours ({hours:.1f}h) within limit",
                rule_reference=STATUTE_NIGHT_WORK,
            )
        return RuleCheck(
            rule=RuleId.NIGHT_WORK,
            passed=False,
            severity=Severity.HIGH,
            message=f"Night work hours ({hours:.1f}h) exceed limit of {limit:g}h",
            rule_reference=STATUTE_NIGHT_WORK,
            recommended_action="Limit night shift duration or schedule breaks during night hours",
        )

    def validate_overtime(self, entries: list[TimeEntry], on: datetime, rules: ComplianceRules) -> RuleCheck:
        """Hours above the regular week are tracked, and only fail past the absolute maximum."""
        hours = total_hours(entries_between(entries, *week_bounds(to_local(on, self.tz))))
        regular = rules.max_weekly_hours_regular
        overtime = hours - regular
        if hours <= regular:
            return RuleCheck(
                rule=RuleId.OVERTIME,
                passed=True,
                message=f"No overtime ({hours:.1f}h <= {regular:g}h)",
                rule_reference=STATUTE_WEEKLY_LIMIT,
            )
        if hours <= rules.max_weekly_hours_absolute:
            return RuleCheck(
                rule=RuleId.OVERTIME,
                passed=True,
                severity=Severity.LOW,
                message=f"Overtime tracked: {overtime:.1f}h (within legal limit)",
                rule_reference=STATUTE_WEEKLY_LIMIT,
                recommended_action="Ensure overtime is compensated or offset with time off",
            )
        return RuleCheck(
            rule=RuleId.OVERTIME,
            passed=False,
            severity=Severity.CRITICAL,
            message=f"Overtime ({overtime:.1f}h) causes total to exceed absolute maximum",
            rule_reference=STATUTE_WEEKLY_LIMIT,
            recommended_action=f"Total weekly hours cannot exceed {rules.max_weekly_hours_absolute:g}h including overtime",
        )

    def validate_absolute_weekly_max(
        self, entries: list[TimeEntry], on: datetime, rules: ComplianceRules
    ) -> RuleCheck:
        hours = total_hours(entries_between(entries, *week_bounds(to_local(on, self.tz))))
        limit = rules.max_weekly_hours_absolute
        if hours <= limit:
            return RuleCheck(
                rule=RuleId.WEEKLY_ABSOLUTE_MAX,
                passed=True,
                message=f"Weekly hours ({hours:.1f}h) within absolute maximum",
                rule_reference=STATUTE_WEEKLY_LIMIT,
            )
        return RuleCheck(
            rule=RuleId.WEEKLY_ABSOLUTE_MAX,
            passed=False,
            severity=Severity.CRITICAL,
            message=f"Weekly hours ({hours:.1f}h) exceed absolute maximum of {limit:g}h",
            rule_reference=STATUTE_WEEKLY_LIMIT,
            recommended_action="Immediate action required - no further work allowed this week",
        )

    def validate_adolescent_restrictions(
        self,
        entry: TimeEntry,
        entries: list[TimeEntry],
        age: Optional[int],
        rules: ComplianceRules,
    ) -> RuleCheck:
        if age is None or age >= rules.adolescent_age_threshold:
            return RuleCheck(
                rule=RuleId.ADOLESCENT_RESTRICTIONS,
                passed=True,
                message=f"Not applicable (user is {rules.adolescent_age_threshold} or older)",
                rule_reference=STATUTE_DAILY_LIMIT,
            )

        daily = total_hours(entries_between(entries, *day_bounds(to_local(entry.clock_in, self.tz))))
        if daily > rules.adolescent_max_daily_hours:
            return RuleCheck(
                rule=RuleId.ADOLESCENT_RESTRICTIONS,
                passed=False,
                severity=Severity.CRITICAL,
                message=(
                    f"Adolescent daily hours ({daily:.1f}h) exceed limit of {rules.adolescent_max_daily_hours:g}h"
                ),
                rule_reference=STATUTE_DAILY_LIMIT,
                recommended_action=f"Workers under {rules.adolescent_age_threshold} have stricter hour limits",
            )

        weekly = total_hours(entries_between(entries, *week_bounds(to_local(entry.clock_in, self.tz))))
        if weekly > rules.adolescent_max_weekly_hours:
            return RuleCheck(
                rule=RuleId.ADOLESCENT_RESTRICTIONS,
                passed=False,
                severity=Severity.CRITICAL,
                message=(
                    f"Adolescent weekly hours ({weekly:.1f}h) exceed limit of {rules.adolescent_max_weekly_hours:g}h"
                ),
                rule_reference=STATUTE_DAILY_LIMIT,
                recommended_action=(
                    f"Workers under {rules.adolescent_age_threshold} cannot work more than "
                    f"{rules.adolescent_max_weekly_hours:g}h/week"
                ),
            )

        return RuleCheck(
            rule=RuleId.ADOLESCENT_RESTRICTIONS,
            passed=True,
            message="Adolescent restrictions met",
            rule_reference=STATUTE_DAILY_LIMIT,
        )

    def validate_pregnant_worker(self, entry: TimeEntry, is_pregnant: bool, rules: ComplianceRules) -> RuleCheck:
        if not is_pregnant:
            return RuleCheck(
                rule=RuleId.PREGNANT_WORKER,
                passed=True,
                message="Not applicable",
                rule_reference=STATUTE_PREGNANT_WORKER,
            )

        starts_at_night = is_night_hour(to_local(entry.clock_in, self.tz), rules)
        ends_at_night = entry.clock_out is not None and is_night_hour(to_local(entry.clock_out, self.tz), rules)
        if starts_at_night or ends_at_night:
            return RuleCheck(
                rule=RuleId.PREGNANT_WORKER,
                passed=False,
                severity=Severity.CRITICAL,
                message="Pregnant workers should not be assigned night shifts",
                rule_reference=STATUTE_PREGNANT_WORKER,
                recommended_action="Reassign to daytime shift immediately",
            )
        return RuleCheck(
            rule=RuleId.PREGNANT_WORKER,
            passed=True,
            message="Pregnant worker protections met",
            rule_reference=STATUTE_PREGNANT_WORKER,
        )
