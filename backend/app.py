import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

import config
from compliance import ClockOutValidator, OrganizationPolicyResolver, RosterValidator
from compliance.types import BreakEntry, ClockOutContext, ShiftInterval, TimeEntry
from db import init_db, BeanieShiftRepository, BeanieOrganizationSettingsRepository
from db.database import close_db
from schemas import (
    ShiftValidateRequest,
    RosterWeekRequest,
    ValidationResultResponse,
    PublishRosterResponse,
    WeeklyHoursResponse,
    ClockOutCheckRequest,
    ClockOutCheckResponse,
)
from utils import as_aware, setup_logging, utc_now

VALIDATION_FAILED = "Failed to validate compliance"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.LOG_LEVEL)
    await init_db()
    yield
    await close_db()


app = FastAPI(title="rosterCompliance", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_roster_validator() -> RosterValidator:
    return RosterValidator(
        shifts=BeanieShiftRepository(),
        policy=OrganizationPolicyResolver(BeanieOrganizationSettingsRepository()),
        rules=config.load_rules(),
        tz=config.compliance_timezone(),
    )


def get_clock_out_validator() -> ClockOutValidator:
    return ClockOutValidator(tz=config.compliance_timezone())


def _local(value: datetime) -> datetime:
    """Requests without a UTC offset are wall-clock times in the compliance zone."""
    return as_aware(value, config.compliance_timezone())


@app.post("/shifts/validate", response_model=ValidationResultResponse)
async def validate_shift(
    request: ShiftValidateRequest,
    validator: RosterValidator = Depends(get_roster_validator),
):
    shift = ShiftInterval(
        id=request.shift_id,
        organization_id=request.organization_id,
        user_id=request.user_id,
        start=_local(request.start_time),
        end=_local(request.end_time),
        break_minutes=request.break_minutes,
    )
    try:
        result = await validator.validate_shift_assignment(
            request.organization_id, request.user_id, shift, exclude_id=request.shift_id,
        )
    except Exception as e:
        logging.error(f"Shift validation failed for {request.user_id} in {request.organization_id}: {e}")
        raise HTTPException(status_code=503, detail=VALIDATION_FAILED)

    return result.to_dict()


@app.post("/roster/validate", response_model=ValidationResultResponse)
async def validate_roster(
    request: RosterWeekRequest,
    validator: RosterValidator = Depends(get_roster_validator),
):
    try:
        result = await validator.validate_roster_for_publish(
            request.organization_id, _local(request.week_start), _local(request.week_end),
        )
    except Exception as e:
        logging.error(f"Roster validation failed for {request.organization_id}: {e}")
        raise HTTPException(status_code=503, detail=VALIDATION_FAILED)

    return result.to_dict()


@app.post("/roster/publish", response_model=PublishRosterResponse)
async def publish_roster(
    request: RosterWeekRequest,
    validator: RosterValidator = Depends(get_roster_validator),
):
    try:
        outcome = await validator.publish_roster(
            request.organization_id,
            _local(request.week_start),
            _local(request.week_end),
            published_at=utc_now(),
        )
    except Exception as e:
        logging.error(f"Roster publish failed for {request.organization_id}: {e}")
        raise HTTPException(status_code=503, detail=VALIDATION_FAILED)

    result = outcome.result
    if not result.valid:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Roster has compliance violations that must be resolved before publishing",
                "violations": [v.to_dict() for v in result.violations],
                "warnings": [w.to_dict() for w in result.warnings],
            },
        )
    if outcome.shifts_published == 0:
        raise HTTPException(status_code=400, detail="No draft shifts found for the specified week")

    return {
        "message": "Roster published successfully",
        "shifts_published": outcome.shifts_published,
        "warnings": [w.to_dict() for w in result.warnings],
    }


@app.get("/users/{user_id}/weekly-hours", response_model=WeeklyHoursResponse)
async def get_weekly_hours(
    user_id: str,
    organization_id: str,
    week_date: datetime,
    validator: RosterValidator = Depends(get_roster_validator),
):
    try:
        summary = await validator.get_user_weekly_hours(organization_id, user_id, _local(week_date))
    except Exception as e:
        logging.error(f"Weekly hours lookup failed for {user_id} in {organization_id}: {e}")
        raise HTTPException(status_code=503, detail="Failed to load weekly hours")

    return summary.to_dict()


@app.post("/time-entries/compliance-check", response_model=ClockOutCheckResponse)
async def clock_out_compliance_check(
    request: ClockOutCheckRequest,
    validator: ClockOutValidator = Depends(get_clock_out_validator),
):
    def to_entry(e) -> TimeEntry:
        return TimeEntry(
            id=e.id,
            clock_in=_local(e.clock_in),
            clock_out=_local(e.clock_out) if e.clock_out else None,
            break_minutes=e.break_minutes,
        )

    context = ClockOutContext(
        current_entry=to_entry(request.current_entry),
        all_entries=[to_entry(e) for e in request.entries],
        breaks=[
            BreakEntry(
                id=b.id,
                time_entry_id=b.time_entry_id,
                break_start=_local(b.break_start),
                break_end=_local(b.break_end) if b.break_end else None,
                break_type=b.break_type,
            )
            for b in request.breaks
        ],
        rules=config.load_rules(),
        user_age=request.user_age,
        date_of_birth=request.date_of_birth,
        is_pregnant=request.is_pregnant,
    )
    checks = validator.validate_all(context)

    failed = [c for c in checks if not c.passed]
    if failed:
        logging.info(
            f"Clock-out check for entry {context.current_entry.id}: "
            f"{len(failed)} rule(s) failed ({', '.join(c.rule.value for c in failed)})"
        )

    return {
        "compliant": not failed,
        "blocking": any(c.is_blocking for c in checks),
        "checks": [c.to_dict() for c in checks],
    }
