"""Rule evaluators for shift assignment validation.

Each rule is a pure `evaluate_*` function returning a ValidationResult
fragment. The `*Validator` classes adapt them to a ShiftContext so the engine
can run them in a fixed order.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Optional

from .calendar import hours_between
from .types import (
    ORGANIZATION_POLICY,
    SCHEDULING_CONFLICT,
    STATUTE_DAILY_LIMIT,
    STATUTE_REST_PERIOD,
    STATUTE_WEEKLY_LIMIT,
    ComplianceRules,
    RuleId,
    Severity,
    ShiftContext,
    ShiftInterval,
    ValidationIssue,
    ValidationResult,
)


DOUBLE_BOOKING_MESSAGE = "A shift already exists at this time for this user"


def evaluate_daily_hours(
    shift_hours: float,
    existing_daily_hours: float,
    rules: ComplianceRules,
) -> ValidationResult:
    """Statutory daily cap. Violation above the cap, warning in the last hour below it."""
    result = ValidationResult()
    projected = existing_daily_hours + shift_hours
    limit = rules.max_daily_hours
    details = {"daily_hours": round(projected, 2), "max_allowed": limit}

    if projected > limit:
        result.add_violation(ValidationIssue(
            rule=RuleId.DAILY_LIMIT,
            message=f"Daily total of {projected:.1f}h exceeds {limit:g}h limit",
            severity=Severity.CRITICAL,
            rule_reference=STATUTE_DAILY_LIMIT,
            details=details,
        ))
    elif projected > limit - 1:
        result.add_warning(ValidationIssue(
            rule=RuleId.APPROACHING_DAILY_LIMIT,
            message=f"Daily total of {projected:.1f}h is approaching the {limit:g}h limit",
            severity=Severity.MEDIUM,
            rule_reference=STATUTE_DAILY_LIMIT,
            details=details,
        ))

    return result


def evaluate_weekly_hours(
    shift_hours: float,
    existing_weekly_hours: float,
    rules: ComplianceRules,
) -> ValidationResult:
    """Weekly caps, checked from the most severe down. At most one issue."""
    result = ValidationResult()
    projected = existing_weekly_hours + shift_hours
    regular = rules.max_weekly_hours_regular
    absolute = rules.max_weekly_hours_absolute

    if projected > absolute:
        result.add_violation(ValidationIssue(
            rule=RuleId.WEEKLY_ABSOLUTE_MAX,
            message=f"Weekly total of {projected:.1f}h exceeds {absolute:g}h absolute maximum",
            severity=Severity.CRITICAL,
            rule_reference=STATUTE_WEEKLY_LIMIT,
            details={"weekly_hours": round(projected, 2), "max_allowed": absolute},
        ))
    elif projected > regular:
        result.add_violation(ValidationIssue(
            rule=RuleId.WEEKLY_LIMIT,
            message=f"Weekly total of {projected:.1f}h exceeds {regular:g}h regular maximum",
            severity=Severity.HIGH,
            rule_reference=STATUTE_WEEKLY_LIMIT,
            details={"weekly_hours": round(projected, 2), "max_allowed": regular},
        ))
    elif projected >= rules.weekly_warning_threshold:
        result.add_warning(ValidationIssue(
            rule=RuleId.APPROACHING_OVERTIME,
            message=f"Weekly total of {projected:.1f}h is approaching the {regular:g}h limit",
            severity=Severity.LOW,
            details={"weekly_hours": round(projected, 2), "threshold": rules.weekly_warning_threshold},
        ))

    return result


def evaluate_rest_period(
    shift_start: datetime,
    rules: ComplianceRules,
    previous_end: Optional[datetime] = None,
    next_start: Optional[datetime] = None,
    shift_end: Optional[datetime] = None,
    assumed_shift_hours: Optional[float] = None,
) -> ValidationResult:
    """
    Minimum rest on either side of a shift.

    Rest after the previous shift is checked when `previous_end` is given, rest
    before the next shift when `next_start` is given. Both sides are checked
    independently. When `shift_end` is unknown the shift is assumed to last
    `assumed_shift_hours` (default from the rules).
    """
    result = ValidationResult()
    minimum = rules.min_rest_hours

    if previous_end is not None:
        rest = hours_between(previous_end, shift_start)
        if rest < minimum:
            result.add_violation(ValidationIssue(
                rule=RuleId.REST_PERIOD,
                message=f"Only {rest:.1f}h rest since last shift ({minimum:g}h required)",
                severity=Severity.CRITICAL,
                rule_reference=STATUTE_REST_PERIOD,
                details={
                    "rest_hours": round(rest, 2),
                    "min_required": minimum,
                    "previous_shift_end": previous_end.isoformat(),
                    "current_shift_start": shift_start.isoformat(),
                },
            ))

    if next_start is not None:
        if shift_end is None:
            hours = rules.assumed_open_shift_hours if assumed_shift_hours is None else assumed_shift_hours
            shift_end = shift_start + timedelta(hours=hours)
        rest = hours_between(shift_end, next_start)
        if rest < minimum:
            result.add_violation(ValidationIssue(
                rule=RuleId.REST_PERIOD_BEFORE,
                message=f"Only {rest:.1f}h rest before next shift ({minimum:g}h required)",
                severity=Severity.CRITICAL,
                rule_reference=STATUTE_REST_PERIOD,
                details={
                    "rest_hours": round(rest, 2),
                    "min_required": minimum,
                    "current_shift_end": shift_end.isoformat(),
                    "next_shift_start": next_start.isoformat(),
                },
            ))

    return result


def shifts_overlap(existing: ShiftInterval, start: datetime, end: datetime) -> bool:
    """Closed-interval overlap: touching boundaries count as a conflict."""
    return existing.start <= end and existing.end >= start


def evaluate_double_booking(
    shift: ShiftInterval,
    existing_shifts: list[ShiftInterval],
    exclude_id: Optional[str] = None,
) -> ValidationResult:
    result = ValidationResult()
    exclude = exclude_id if exclude_id is not None else shift.id
    conflicts = [
        s for s in existing_shifts
        if (exclude is None or s.id != exclude) and shifts_overlap(s, shift.start, shift.end)
    ]
    if conflicts:
        result.add_violation(ValidationIssue(
            rule=RuleId.DOUBLE_BOOKING,
            message=DOUBLE_BOOKING_MESSAGE,
            severity=Severity.CRITICAL,
            rule_reference=SCHEDULING_CONFLICT,
        ))
    return result


def evaluate_org_daily_limit(
    shift_hours: float,
    existing_daily_hours: float,
    max_daily_hours: Optional[float],
) -> ValidationResult:
    """Organization ceiling, checked alongside the statutory one. No override, no issue."""
    result = ValidationResult()
    if max_daily_hours is None:
        return result

    projected = existing_daily_hours + shift_hours
    if projected > max_daily_hours:
        result.add_violation(ValidationIssue(
            rule=RuleId.ORG_DAILY_LIMIT,
            message=f"Daily total of {projected:.1f}h exceeds organization's daily limit of {max_daily_hours:g}h",
            severity=Severity.HIGH,
            rule_reference=ORGANIZATION_POLICY,
            details={"daily_hours": round(projected, 2), "max_allowed": max_daily_hours},
        ))
    return result


class BaseValidator(ABC):
    """Base class for per-shift validators."""

    @abstractmethod
    def validate(self, context: ShiftContext, result: ValidationResult) -> None:
        """Validate the proposed shift and add issues to result."""
        pass


class DailyHoursValidator(BaseValidator):
    def validate(self, context: ShiftContext, result: ValidationResult) -> None:
        result.merge(evaluate_daily_hours(
            context.shift.net_hours, context.existing_daily_hours, context.rules,
        ))


class DoubleBookingValidator(BaseValidator):
    def validate(self, context: ShiftContext, result: ValidationResult) -> None:
        result.merge(evaluate_double_booking(context.shift, context.overlapping_shifts))


class RestPeriodValidator(BaseValidator):
    """Rest since the most recent earlier shift."""

    def validate(self, context: ShiftContext, result: ValidationResult) -> None:
        previous = context.previous_shift
        if previous is None:
            return
        result.merge(evaluate_rest_period(
            context.shift.start, context.rules, previous_end=previous.end,
        ))


class WeeklyHoursValidator(BaseValidator):
    def validate(self, context: ShiftContext, result: ValidationResult) -> None:
        result.merge(evaluate_weekly_hours(
            context.shift.net_hours, context.existing_weekly_hours, context.rules,
        ))


class OrganizationDailyLimitValidator(BaseValidator):
    def validate(self, context: ShiftContext, result: ValidationResult) -> None:
        result.merge(evaluate_org_daily_limit(
            context.shift.net_hours, context.existing_daily_hours, context.daily_hours_override,
        ))
