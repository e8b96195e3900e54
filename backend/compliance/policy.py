"""Organization policy resolution with fallback to the statutory defaults."""

import logging
from typing import Optional, Protocol

from .types import OrganizationSettings


class OrganizationSettingsSource(Protocol):
    async def get_daily_hours_override(self, organization_id: str) -> Optional[float]:
        ...


class OrganizationPolicyResolver:
    """
    Resolves the per-organization daily-hour ceiling.

    The lookup fails open: a missing record or a failing settings store both
    mean "no custom policy", never a blocking condition.
    """

    def __init__(self, source: Optional[OrganizationSettingsSource]):
        self.source = source

    async def resolve(self, organization_id: str) -> OrganizationSettings:
        return OrganizationSettings(
            organization_id=organization_id,
            max_daily_hours=await self.daily_hours_override(organization_id),
        )

    async def daily_hours_override(self, organization_id: str) -> Optional[float]:
        if self.source is None:
            return None
        try:
            value = await self.source.get_daily_hours_override(organization_id)
        except Exception as e:
            logging.warning(f"Organization settings lookup failed for {organization_id}, using statutory defaults: {e}")
            return None

        if value is None:
            return None
        try:
            value = float(value)
        except (TypeError, ValueError):
            logging.warning(f"Ignoring non-numeric daily hours override for {organization_id}: {value!r}")
            return None
        if value <= 0:
            logging.warning(f"Ignoring non-positive daily hours override for {organization_id}: {value}")
            return None
        return value

