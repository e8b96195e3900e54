from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator


def _check_comparable(start: datetime, end: datetime, names: str):
    if (start.tzinfo is None) != (end.tzinfo is None):
        raise ValueError(f"{names} must both include a UTC offset or both omit it")


class ShiftValidateRequest(BaseModel):
    """Proposed shift assignment. shift_id is set when editing an existing shift."""
    organization_id: str
    user_id: str
    start_time: datetime
    end_time: datetime
    break_minutes: int = Field(default=0, ge=0)
    shift_id: str | None = None

    @model_validator(mode="after")
    def check_shift_bounds(self):
        _check_comparable(self.start_time, self.end_time, "start_time and end_time")
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        duration_minutes = (self.end_time - self.start_time).total_seconds() / 60
        if self.break_minutes >= duration_minutes:
            raise ValueError("break_minutes must be shorter than the shift")
        return self


class RosterWeekRequest(BaseModel):
    organization_id: str
    week_start: datetime
    week_end: datetime

    @model_validator(mode="after")
    def check_week_bounds(self):
        _check_comparable(self.week_start, self.week_end, "week_start and week_end")
        if self.week_end < self.week_start:
            raise ValueError("week_end must not be before week_start")
        return self


class ValidationIssueSchema(BaseModel):
    rule: str
    message: str
    severity: str
    rule_reference: str | None = None
    details: dict = {}


class ValidationResultResponse(BaseModel):
    valid: bool
    violations: list[ValidationIssueSchema] = []
    warnings: list[ValidationIssueSchema] = []


class PublishRosterResponse(BaseModel):
    message: str
    shifts_published: int
    warnings: list[ValidationIssueSchema] = []


class WeeklyHoursResponse(BaseModel):
    user_id: str
    week_start: str
    total_hours: float
    shift_count: int


# ============================================================================
# Clock-out compliance check
# ============================================================================


class TimeEntrySchema(BaseModel):
    id: str
    clock_in: datetime
    clock_out: datetime | None = None
    break_minutes: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_entry_bounds(self):
        if self.clock_out is not None:
            _check_comparable(self.clock_in, self.clock_out, "clock_in and clock_out")
            if self.clock_out < self.clock_in:
                raise ValueError("clock_out must not be before clock_in")
        return self


class BreakEntrySchema(BaseModel):
    id: str
    time_entry_id: str
    break_start: datetime
    break_end: datetime | None = None
    break_type: str = "unpaid"


class ClockOutCheckRequest(BaseModel):
    """A closing time entry plus the user's other entries for the same week."""
    current_entry: TimeEntrySchema
    entries: list[TimeEntrySchema] = []
    breaks: list[BreakEntrySchema] = []
    user_age: int | None = Field(default=None, ge=0)
    date_of_birth: date | None = None
    is_pregnant: bool = False


class RuleCheckSchema(BaseModel):
    rule: str
    passed: bool
    message: str
    severity: str | None = None
    outcome: str | None = None
    rule_reference: str | None = None
    recommended_action: str | None = None


class ClockOutCheckResponse(BaseModel):
    compliant: bool
    blocking: bool
    checks: list[RuleCheckSchema]
