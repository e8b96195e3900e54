"""Type definitions for the compliance module."""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional


STATUTE_DAILY_LIMIT = "Estatuto Art. 34.3"
STATUTE_WEEKLY_LIMIT = "Estatuto Art. 34.1"
STATUTE_REST_PERIOD = "Estatuto Art. 34.3"
STATUTE_BREAKS = "Estatuto Art. 34.4"
STATUTE_WEEKLY_REST = "Estatuto Art. 37.1"
STATUTE_NIGHT_WORK = "Estatuto Art. 36"
STATUTE_PREGNANT_WORKER = "Ley 31/1995 Art. 26"
SCHEDULING_CONFLICT = "Scheduling conflict"
ORGANIZATION_POLICY = "Organization policy"


class RuleId(str, Enum):
    """Identifiers of the rules an issue or check can refer to."""
    DAILY_LIMIT = "daily_limit"
    APPROACHING_DAILY_LIMIT = "approaching_daily_limit"
    DOUBLE_BOOKING = "double_booking"
    REST_PERIOD = "rest_period"
    REST_PERIOD_BEFORE = "rest_period_before"
    WEEKLY_ABSOLUTE_MAX = "weekly_absolute_max"
    WEEKLY_LIMIT = "weekly_limit"
    APPROACHING_OVERTIME = "approaching_overtime"
    WEEKLY_OVERTIME = "weekly_overtime"
    ORG_DAILY_LIMIT = "org_daily_limit"
    MANDATORY_BREAK = "mandatory_break"
    CONTINUOUS_WORK = "continuous_work"
    WEEKLY_REST = "weekly_rest"
    NIGHT_WORK = "night_work"
    OVERTIME = "overtime"
    ADOLESCENT_RESTRICTIONS = "adolescent_restrictions"
    PREGNANT_WORKER = "pregnant_worker"


class Severity(str, Enum):
    """
    Severity of an issue.

    Shift assignment validation grades issues low/medium/high/critical, while
    the blocking decision (clock-out, shift writes) only knows warning/error.
    Both live in this one enum; `outcome` collapses the graded values.
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
    WARNING = "warning"  # Flags but allows the action
    ERROR = "error"  # Blocks the action unless overridden

    @property
    def outcome(self) -> "Severity":
        """Map to the warning/error vocabulary."""
        if self in (Severity.HIGH, Severity.CRITICAL, Severity.ERROR):
            return Severity.ERROR
        return Severity.WARNING

    @property
    def is_blocking(self) -> bool:
        return self.outcome is Severity.ERROR


class ShiftStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ACKNOWLEDGED = "acknowledged"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ShiftInterval:
    """A shift as seen by the evaluators: a time interval plus its break."""
    start: datetime
    end: datetime
    break_minutes: int = 0
    id: Optional[str] = None
    organization_id: Optional[str] = None
    user_id: Optional[str] = None
    status: ShiftStatus = ShiftStatus.DRAFT
    location_id: Optional[str] = None

    @property
    def duration_hours(self) -> float:
        return (self.end - self.start).total_seconds() / 3600

    @property
    def net_hours(self) -> float:
        """Duration minus break, never negative."""
        return max(0.0, self.duration_hours - (self.break_minutes or 0) / 60)


@dataclass
class ValidationIssue:
    """A single problem reported by an evaluator."""
    rule: RuleId
    message: str
    severity: Severity
    rule_reference: Optional[str] = None
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "rule": self.rule.value,
            "message": self.message,
            "severity": self.severity.value,
            "rule_reference": self.rule_reference,
            "details": self.details,
        }


@dataclass
class ValidationResult:
    """Aggregated outcome of one validation call."""
    violations: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.violations

    def add_violation(self, issue: ValidationIssue):
        self.violations.append(issue)

    def add_warning(self, issue: ValidationIssue):
        self.warnings.append(issue)

    def merge(self, other: "ValidationResult"):
        """Append another result's issues, keeping their order."""
        self.violations.extend(other.violations)
        self.warnings.extend(other.warnings)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "valid": self.valid,
            "violations": [v.to_dict() for v in self.violations],
            "warnings": [w.to_dict() for w in self.warnings],
        }


@dataclass(frozen=True)
class OrganizationSettings:
    """Per-organization policy. None means the statutory default applies."""
    organization_id: str
    max_daily_hours: Optional[float] = None


@dataclass(frozen=True)
class WeeklyHoursSummary:
    """Read-only weekly aggregate for display."""
    user_id: str
    week_start: datetime
    total_hours: float
    shift_count: int

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "week_start": self.week_start.isoformat(),
            "total_hours": round(self.total_hours, 2),
            "shift_count": self.shift_count,
        }


@dataclass
class ComplianceRules:
    """Statutory limits enforced by the engine."""
    jurisdiction: str = "ES"

    # Working time (Art. 34.1, 34.3)
    max_daily_hours: float = 9.0
    max_weekly_hours_regular: float = 40.0
    max_weekly_hours_absolute: float = 48.0
    weekly_warning_threshold: float = 38.0

    # Rest between shifts (Art. 34.3)
    min_rest_hours: float = 12.0
    rest_lookback_hours: float = 24.0
    assumed_open_shift_hours: float = 8.0  # End estimate for entries still clocked in

    # Breaks (Art. 34.4)
    mandatory_break_after_hours: float = 6.0
    mandatory_break_minutes: int = 15
    max_continuous_work_hours: float = 9.0

    # Weekly rest (Art. 37.1)
    min_weekly_rest_hours: float = 35.0

    # Night work (Art. 36), hours are local wall clock
    night_work_start: int = 20
    night_work_end: int = 6
    max_night_work_hours: float = 8.0

    # Adolescent workers
    adolescent_age_threshold: int = 18
    adolescent_max_daily_hours: float = 8.0
    adolescent_max_weekly_hours: float = 40.0

    @property
    def rest_lookback(self) -> timedelta:
        return timedelta(hours=self.rest_lookback_hours)


@dataclass
class ShiftContext:
    """Everything the per-shift evaluators need, already fetched."""
    shift: ShiftInterval
    rules: ComplianceRules
    day_shifts: list[ShiftInterval] = field(default_factory=list)  # Same user, same day, edited shift excluded
    week_shifts: list[ShiftInterval] = field(default_factory=list)  # Same user, same week, edited shift excluded
    overlapping_shifts: list[ShiftInterval] = field(default_factory=list)
    previous_shift: Optional[ShiftInterval] = None  # Most recent shift ending within the rest lookback
    daily_hours_override: Optional[float] = None

    @property
    def existing_daily_hours(self) -> float:
        return sum(s.net_hours for s in self.day_shifts)

    @property
    def existing_weekly_hours(self) -> float:
        return sum(s.net_hours for s in self.week_shifts)


# ============================================================================
# Clock-out cross-check
# ============================================================================


@dataclass(frozen=True)
class TimeEntry:
    """A clock-in/clock-out record. clock_out is None while still clocked in."""
    id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    break_minutes: int = 0

    @property
    def net_hours(self) -> float:
        if self.clock_out is None:
            return 0.0
        hours = (self.clock_out - self.clock_in).total_seconds() / 3600
        return max(0.0, hours - (self.break_minutes or 0) / 60)


@dataclass(frozen=True)
class BreakEntry:
    id: str
    time_entry_id: str
    break_start: datetime
    break_end: Optional[datetime] = None
    break_type: str = "unpaid"  # "paid", "unpaid"

    @property
    def minutes(self) -> float:
        if self.break_end is None:
            return 0.0
        return max(0.0, (self.break_end - self.break_start).total_seconds() / 60)


@dataclass
class ClockOutContext:
    """Data for the clock-out cross-check."""
    current_entry: TimeEntry
    all_entries: list[TimeEntry]  # User's entries for the week, current entry included
    breaks: list[BreakEntry] = field(default_factory=list)
    rules: ComplianceRules = field(default_factory=ComplianceRules)
    user_age: Optional[int] = None
    date_of_birth: Optional[date] = None
    is_pregnant: bool = False

    @property
    def age(self) -> Optional[int]:
        """Explicit age, else age on the day of clock-in from date of birth."""
        if self.user_age is not None:
            return self.user_age
        if not self.date_of_birth:
            return None
        on = self.current_entry.clock_in.date()
        age = on.year - self.date_of_birth.year
        if (on.month, on.day) < (self.date_of_birth.month, self.date_of_birth.day):
            age -= 1
        return age


@dataclass
class RuleCheck:
    """Pass/fail outcome of one rule in the clock-out cross-check."""
    rule: RuleId
    passed: bool
    message: str
    severity: Optional[Severity] = None
    rule_reference: Optional[str] = None
    recommended_action: Optional[str] = None

    @property
    def outcome(self) -> Optional[Severity]:
        if self.passed or self.severity is None:
            return None
        return self.severity.outcome

    @property
    def is_blocking(self) -> bool:
        return not self.passed and self.severity is not None and self.severity.is_blocking

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "rule": self.rule.value,
            "passed": self.passed,
            "message": self.message,
            "severity": self.severity.value if self.severity else None,
            "outcome": self.outcome.value if self.outcome else None,
            "rule_reference": self.rule_reference,
            "recommended_action": self.recommended_action,
        }
