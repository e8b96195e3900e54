"""Labor law compliance module for shift assignments."""

from .types import (
    ClockOutContext,
    ComplianceRules,
    RuleCheck,
    RuleId,
    Severity,
    ShiftContext,
    ShiftInterval,
    ShiftStatus,
    ValidationIssue,
    ValidationResult,
    WeeklyHoursSummary,
)
from .engine import ComplianceEngine, PublishOutcome, RosterValidator, ShiftRepository
from .clock_out import ClockOutValidator
from .policy import OrganizationPolicyResolver
from .validators import (
    BaseValidator,
    DailyHoursValidator,
    DoubleBookingValidator,
    RestPeriodValidator,
    WeeklyHoursValidator,
    OrganizationDailyLimitValidator,
)

__all__ = [
    "ClockOutContext",
    "ComplianceRules",
    "RuleCheck",
    "RuleId",
    "Severity",
    "ShiftContext",
    "ShiftInterval",
    "ShiftStatus",
    "ValidationIssue",
    "ValidationResult",
    "WeeklyHoursSummary",
    "ComplianceEngine",
    "PublishOutcome",
    "RosterValidator",
    "ShiftRepository",
    "ClockOutValidator",
    "OrganizationPolicyResolver",
    "BaseValidator",
    "DailyHoursValidator",
    "DoubleBookingValidator",
    "RestPeriodValidator",
    "WeeklyHoursValidator",
    "OrganizationDailyLimitValidator",
]
