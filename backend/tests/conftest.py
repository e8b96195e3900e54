import pytest
from dataclasses import replace
from datetime import datetime
from typing import Optional

from compliance.types import ComplianceRules, ShiftContext, ShiftInterval, ShiftStatus


class InMemoryShiftRepository:
    """Shift repository over a plain list, same filtering as the beanie one."""

    def __init__(self, shifts: list[ShiftInterval] = None):
        self.shifts = list(shifts or [])
        self.publish_calls = 0

    def add(self, *shifts: ShiftInterval):
        self.shifts.extend(shifts)

    def _for_user(self, organization_id, user_id, exclude_id):
        return [
            s for s in self.shifts
            if s.organization_id == organization_id
            and s.user_id == user_id
            and s.status != ShiftStatus.CANCELLED
            and (exclude_id is None or s.id != exclude_id)
        ]

    async def list_user_shifts(self, organization_id, user_id, start, end, exclude_id=None):
        found = [s for s in self._for_user(organization_id, user_id, exclude_id) if start <= s.start <= end]
        return sorted(found, key=lambda s: s.start)

    async def list_overlapping(self, organization_id, user_id, start, end, exclude_id=None):
        found = [s for s in self._for_user(organization_id, user_id, exclude_id) if s.start <= end and s.end >= start]
        return sorted(found, key=lambda s: s.start)

    async def list_ending_between(self, organization_id, user_id, since, until, exclude_id=None):
        found = [s for s in self._for_user(organization_id, user_id, exclude_id) if since <= s.end <= until]
        return sorted(found, key=lambda s: s.end)

    def _drafts(self, organization_id, start, end):
        return [
            s for s in self.shifts
            if s.organization_id == organization_id
            and s.status == ShiftStatus.DRAFT
            and start <= s.start <= end
        ]

    async def list_drafts(self, organization_id, start, end):
        return sorted(self._drafts(organization_id, start, end), key=lambda s: s.start)

    async def publish_drafts(self, organization_id, start, end, published_at):
        self.publish_calls += 1
        drafts = self._drafts(organization_id, start, end)
        self.shifts = [
            replace(s, status=ShiftStatus.PUBLISHED) if s in drafts else s
            for s in self.shifts
        ]
        return len(drafts)


class FakeSettingsSource:
    def __init__(self, overrides: dict = None):
        self.overrides = overrides or {}

    async def get_daily_hours_override(self, organization_id: str) -> Optional[float]:
        return self.overrides.get(organization_id)


@pytest.fixture
def rules():
    return ComplianceRules()


@pytest.fixture
def make_shift():
    """Factory to create ShiftInterval objects from ISO strings."""
    def _make_shift(
        start: str,
        end: str,
        break_minutes: int = 0,
        id: str = None,
        user_id: Optional[str] = "user-1",
        organization_id: str = "org-1",
        status: ShiftStatus = ShiftStatus.DRAFT,
    ) -> ShiftInterval:
        return ShiftInterval(
            start=datetime.fromisoformat(start),
            end=datetime.fromisoformat(end),
            break_minutes=break_minutes,
            id=id,
            organization_id=organization_id,
            user_id=user_id,
            status=status,
        )
    return _make_shift


@pytest.fixture
def make_context(rules):
    """Factory to create ShiftContext objects."""
    def _make_context(
        shift: ShiftInterval,
        day_shifts: list[ShiftInterval] = None,
        week_shifts: list[ShiftInterval] = None,
        overlapping_shifts: list[ShiftInterval] = None,
        previous_shift: ShiftInterval = None,
        daily_hours_override: float = None,
    ) -> ShiftContext:
        return ShiftContext(
            shift=shift,
            rules=rules,
            day_shifts=day_shifts or [],
            week_shifts=week_shifts or [],
            overlapping_shifts=overlapping_shifts or [],
            previous_shift=previous_shift,
            daily_hours_override=daily_hours_override,
        )
    return _make_context


@pytest.fixture
def shift_repo():
    return InMemoryShiftRepository()


@pytest.fixture
def settings_source():
    return FakeSettingsSource()
