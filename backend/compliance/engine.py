"""Compliance validation engine that orchestrates all validators."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Optional, Protocol

from .calendar import day_bounds, hours_between, to_local, week_bounds
from .policy import OrganizationPolicyResolver
from .types import (
    STATUTE_REST_PERIOD,
    STATUTE_WEEKLY_LIMIT,
    ComplianceRules,
    RuleId,
    Severity,
    ShiftContext,
    ShiftInterval,
    ValidationIssue,
    ValidationResult,
    WeeklyHoursSummary,
)
from .validators import (
    BaseValidator,
    DailyHoursValidator,
    DoubleBookingValidator,
    OrganizationDailyLimitValidator,
    RestPeriodValidator,
    WeeklyHoursValidator,
)


class ShiftRepository(Protocol):
    """Read access to stored shifts. All ranges are inclusive."""

    async def list_user_shifts(
        self, organization_id: str, user_id: str, start: datetime, end: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[ShiftInterval]:
        """Shifts of one user starting within [start, end], ordered by start."""
        ...

    async def list_overlapping(
        self, organization_id: str, user_id: str, start: datetime, end: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[ShiftInterval]:
        """Shifts of one user sharing at least one instant with [start, end]."""
        ...

    async def list_ending_between(
        self, organization_id: str, user_id: str, since: datetime, until: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[ShiftInterval]:
        """Shifts of one user ending within [since, until], ordered by end."""
        ...

    async def list_drafts(self, organization_id: str, start: datetime, end: datetime) -> list[ShiftInterval]:
        """Draft shifts of the whole organization starting within [start, end]."""
        ...

    async def publish_drafts(
        self, organization_id: str, start: datetime, end: datetime, published_at: datetime,
    ) -> int:
        ...


def most_recent_ending_before(
    shifts: list[ShiftInterval], start: datetime, lookback: timedelta
) -> Optional[ShiftInterval]:
    """Latest shift ending in [start - lookback, start]."""
    since = start - lookback
    candidates = [s for s in shifts if since <= s.end <= start]
    return max(candidates, key=lambda s: s.end, default=None)


class ComplianceEngine:
    """
    Runs the per-shift validators and the roster sweep over data that has
    already been fetched. Holds no state between calls.
    """

    def __init__(self, rules: Optional[ComplianceRules] = None):
        self.rules = rules or ComplianceRules()
        # Order is part of the result contract
        self.validators: list[BaseValidator] = [
            DailyHoursValidator(),
            DoubleBookingValidator(),
            RestPeriodValidator(),
            WeeklyHoursValidator(),
            OrganizationDailyLimitValidator(),
        ]

    def validate(self, context: ShiftContext) -> ValidationResult:
        """
        Run every validator against one proposed shift.

        No validator is skipped because an earlier one failed, so the caller
        always receives the complete issue set.

        Args:
            context: The proposed shift plus the user's surrounding shifts

        Returns:
            ValidationResult with all violations and warnings found
        """
        result = ValidationResult()
        for validator in self.validators:
            validator.validate(context, result)
        return result

    def sweep_roster(self, shifts: list[ShiftInterval]) -> ValidationResult:
        """
        Validate a week of draft shifts for every user at once.

        Unassigned shifts are ignored. Users are processed in ascending id order
        so the same input always yields the same result.
        """
        rules = self.rules
        result = ValidationResult()

        shifts_by_user: dict[str, list[ShiftInterval]] = defaultdict(list)
        for shift in shifts:
            if not shift.user_id:
                continue
            shifts_by_user[shift.user_id].append(shift)

        for user_id in sorted(shifts_by_user):
            user_shifts = shifts_by_user[user_id]

            total = sum(s.net_hours for s in user_shifts)
            if total > rules.max_weekly_hours_absolute:
                result.add_violation(ValidationIssue(
                    rule=RuleId.WEEKLY_ABSOLUTE_MAX,
                    message=(
                        f"User {user_id} has {total:.1f}h scheduled "
                        f"({rules.max_weekly_hours_absolute:g}h max)"
                    ),
                    severity=Severity.CRITICAL,
                    rule_reference=STATUTE_WEEKLY_LIMIT,
                    details={"user_id": user_id, "weekly_hours": round(total, 2)},
                ))
            elif total > rules.max_weekly_hours_regular:
                # Overtime is allowed at publish time, only the absolute cap blocks
                result.add_warning(ValidationIssue(
                    rule=RuleId.WEEKLY_OVERTIME,
                    message=f"User {user_id} has {total:.1f}h scheduled (overtime)",
                    severity=Severity.MEDIUM,
                    rule_reference=STATUTE_WEEKLY_LIMIT,
                    details={"user_id": user_id, "weekly_hours": round(total, 2)},
                ))

            ordered = sorted(user_shifts, key=lambda s: s.start)
            for current, following in zip(ordered, ordered[1:]):
                rest = hours_between(current.end, following.start)
                if rest < rules.min_rest_hours:
                    result.add_violation(ValidationIssue(
                        rule=RuleId.REST_PERIOD,
                        message=f"User {user_id} has only {rest:.1f}h rest between shifts",
                        severity=Severity.CRITICAL,
                        rule_reference=STATUTE_REST_PERIOD,
                        details={
                            "user_id": user_id,
                            "rest_hours": round(rest, 2),
                            "min_required": rules.min_rest_hours,
                            "previous_shift_end": current.end.isoformat(),
                            "next_shift_start": following.start.isoformat(),
                        },
                    ))

        return result

    @staticmethod
    def weekly_summary(user_id: str, week_start: datetime, shifts: list[ShiftInterval]) -> WeeklyHoursSummary:
        return WeeklyHoursSummary(
            user_id=user_id,
            week_start=week_start,
            total_hours=sum(s.net_hours for s in shifts),
            shift_count=len(shifts),
        )


@dataclass
class PublishOutcome:
    result: ValidationResult
    shifts_published: int = 0


class RosterValidator:
    """
    Entry point for scheduling handlers: fetches the context a validation
    needs from the repositories, then hands it to the ComplianceEngine.

    Repository failures propagate to the caller. Organization settings
    failures do not (see OrganizationPolicyResolver).
    """

    def __init__(
        self,
        shifts: ShiftRepository,
        policy: OrganizationPolicyResolver,
        rules: Optional[ComplianceRules] = None,
        tz: Optional[tzinfo] = None,
    ):
        self.shifts = shifts
        self.policy = policy
        self.engine = ComplianceEngine(rules)
        self.tz = tz

    @property
    def rules(self) -> ComplianceRules:
        return self.engine.rules

    async def build_context(
        self,
        organization_id: str,
        user_id: str,
        shift: ShiftInterval,
        exclude_id: Optional[str] = None,
    ) -> ShiftContext:
        local_start = to_local(shift.start, self.tz)
        day_start, day_end = day_bounds(local_start)
        week_start, week_end = week_bounds(local_start)

        day_shifts = await self.shifts.list_user_shifts(
            organization_id, user_id, day_start, day_end, exclude_id,
        )
        week_shifts = await self.shifts.list_user_shifts(
            organization_id, user_id, week_start, week_end, exclude_id,
        )
        overlapping = await self.shifts.list_overlapping(
            organization_id, user_id, shift.start, shift.end, exclude_id,
        )
        recent = await self.shifts.list_ending_between(
            organization_id, user_id, shift.start - self.rules.rest_lookback, shift.start, exclude_id,
        )
        settings = await self.policy.resolve(organization_id)

        return ShiftContext(
            shift=shift,
            rules=self.rules,
            day_shifts=day_shifts,
            week_shifts=week_shifts,
            overlapping_shifts=overlapping,
            previous_shift=most_recent_ending_before(recent, shift.start, self.rules.rest_lookback),
            daily_hours_override=settings.max_daily_hours,
        )

    async def validate_shift_assignment(
        self,
        organization_id: str,
        user_id: str,
        shift: ShiftInterval,
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a proposed shift assignment.

        Args:
            organization_id: Organization owning the shift
            user_id: User the shift is assigned to
            shift: Proposed start, end and break
            exclude_id: Id of the shift being edited, so it does not conflict with itself

        Returns:
            ValidationResult; valid is False when any violation was found
        """
        context = await self.build_context(organization_id, user_id, shift, exclude_id)
        result = self.engine.validate(context)

        if result.violations:
            logging.info(
                f"Shift for {user_id} in {organization_id} at {shift.start.isoformat()}: "
                f"{len(result.violations)} violation(s), {len(result.warnings)} warning(s)"
            )
        else:
            logging.debug(f"Shift for {user_id} in {organization_id} at {shift.start.isoformat()} is compliant")
        return result

    async def validate_roster_for_publish(
        self, organization_id: str, week_start: datetime, week_end: datetime
    ) -> ValidationResult:
        drafts = await self.shifts.list_drafts(organization_id, week_start, week_end)
        result = self.engine.sweep_roster(drafts)
        logging.info(
            f"Roster sweep for {organization_id} ({week_start.date()} - {week_end.date()}): "
            f"{len(drafts)} draft shift(s), {len(result.violations)} violation(s), {len(result.warnings)} warning(s)"
        )
        return result

    async def publish_roster(
        self,
        organization_id: str,
        week_start: datetime,
        week_end: datetime,
        published_at: datetime,
    ) -> PublishOutcome:
        """Publish the week's drafts, only if the roster sweep finds no violations."""
        result = await self.validate_roster_for_publish(organization_id, week_start, week_end)
        if not result.valid:
            logging.warning(
                f"Publish blocked for {organization_id}: {len(result.violations)} compliance violation(s)"
            )
            return PublishOutcome(result=result)

        published = await self.shifts.publish_drafts(organization_id, week_start, week_end, published_at)
        logging.info(f"Published {published} shift(s) for {organization_id}")
        return PublishOutcome(result=result, shifts_published=published)

    async def get_user_weekly_hours(
        self, organization_id: str, user_id: str, week_date: datetime
    ) -> WeeklyHoursSummary:
        week_start, week_end = week_bounds(to_local(week_date, self.tz))
        shifts = await self.shifts.list_user_shifts(organization_id, user_id, week_start, week_end)
        return self.engine.weekly_summary(user_id, week_start, shifts)
