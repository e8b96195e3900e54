from datetime import datetime
from typing import Literal, Optional

from beanie import Document, Indexed
from pydantic import Field
from pymongo import IndexModel

from compliance.types import ShiftInterval, ShiftStatus
from utils import ensure_utc, utc_now


# Valid shift status values
ShiftStatusValue = Literal["draft", "published", "acknowledged", "completed", "cancelled"]


class ShiftDoc(Document):
    """
    A scheduled shift. Unassigned shifts have no user_id.
    Times are stored in UTC.
    """
    organization_id: Indexed(str)
    user_id: Optional[str] = None
    location_id: Optional[str] = None

    start_time: datetime
    end_time: datetime
    break_minutes: int = 0

    status: ShiftStatusValue = "draft"
    published_at: Optional[datetime] = None

    # Audit
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "shifts"
        indexes = [
            IndexModel([("organization_id", 1), ("user_id", 1), ("start_time", 1)]),
            IndexModel([("organization_id", 1), ("user_id", 1), ("end_time", 1)]),
            IndexModel([("organization_id", 1), ("status", 1), ("start_time", 1)]),
        ]

    def to_interval(self) -> ShiftInterval:
        return ShiftInterval(
            id=str(self.id) if self.id is not None else None,
            organization_id=self.organization_id,
            user_id=self.user_id,
            location_id=self.location_id,
            start=ensure_utc(self.start_time),
            end=ensure_utc(self.end_time),
            break_minutes=self.break_minutes or 0,
            status=ShiftStatus(self.status),
        )


class OrganizationSettingsDoc(Document):
    """Per-organization compliance policy. Missing fields fall back to statutory defaults."""
    organization_id: Indexed(str, unique=True)
    max_daily_hours: Optional[float] = None
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "organization_settings"
