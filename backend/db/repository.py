"""Beanie-backed repositories consumed by the compliance service."""

from datetime import datetime
from typing import Optional

from beanie import PydanticObjectId
from bson import ObjectId

from compliance.types import ShiftInterval
from .models import OrganizationSettingsDoc, ShiftDoc


class BeanieShiftRepository:
    """
    Shift queries for one user or one organization. Cancelled shifts never
    count towards hours, rest or conflicts, so they are filtered out here.
    """

    def _user_filters(self, organization_id: str, user_id: str, exclude_id: Optional[str]) -> list:
        filters = [
            ShiftDoc.organization_id == organization_id,
            ShiftDoc.user_id == user_id,
            ShiftDoc.status != "cancelled",
        ]
        # Ids that are not ObjectIds cannot match a stored shift
        if exclude_id and ObjectId.is_valid(exclude_id):
            filters.append(ShiftDoc.id != PydanticObjectId(exclude_id))
        return filters

    async def list_user_shifts(
        self, organization_id: str, user_id: str, start: datetime, end: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[ShiftInterval]:
        docs = (
            await ShiftDoc.find(
                *self._user_filters(organization_id, user_id, exclude_id),
                ShiftDoc.start_time >= start,
                ShiftDoc.start_time <= end,
            )
            .sort(+ShiftDoc.start_time)
            .to_list()
        )
        return [doc.to_interval() for doc in docs]

    async def list_overlapping(
        self, organization_id: str, user_id: str, start: datetime, end: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[ShiftInterval]:
        docs = (
            await ShiftDoc.find(
                *self._user_filters(organization_id, user_id, exclude_id),
                ShiftDoc.start_time <= end,
                ShiftDoc.end_time >= start,
            )
            .sort(+ShiftDoc.start_time)
            .to_list()
        )
        return [doc.to_interval() for doc in docs]

    async def list_ending_between(
        self, organization_id: str, user_id: str, since: datetime, until: datetime,
        exclude_id: Optional[str] = None,
    ) -> list[ShiftInterval]:
        docs = (
            await ShiftDoc.find(
                *self._user_filters(organization_id, user_id, exclude_id),
                ShiftDoc.end_time >= since,
                ShiftDoc.end_time <= until,
            )
            .sort(+ShiftDoc.end_time)
            .to_list()
        )
        return [doc.to_interval() for doc in docs]

    async def list_drafts(self, organization_id: str, start: datetime, end: datetime) -> list[ShiftInterval]:
        docs = (
            await ShiftDoc.find(
                ShiftDoc.organization_id == organization_id,
                ShiftDoc.status == "draft",
                ShiftDoc.start_time >= start,
                ShiftDoc.start_time <= end,
            )
            .sort(+ShiftDoc.start_time)
            .to_list()
        )
        return [doc.to_interval() for doc in docs]

    async def publish_drafts(
        self, organization_id: str, start: datetime, end: datetime, published_at: datetime,
    ) -> int:
        result = await ShiftDoc.find(
            ShiftDoc.organization_id == organization_id,
            ShiftDoc.status == "draft",
            ShiftDoc.start_time >= start,
            ShiftDoc.start_time <= end,
        ).update_many(
            {"$set": {"status": "published", "published_at": published_at, "updated_at": published_at}}
        )
        return result.modified_count if result is not None else 0


class BeanieOrganizationSettingsRepository:
    async def get_daily_hours_override(self, organization_id: str) -> Optional[float]:
        settings = await OrganizationSettingsDoc.find_one(
            OrganizationSettingsDoc.organization_id == organization_id
        )
        if settings is None:
            return None
        return settings.max_daily_hours
