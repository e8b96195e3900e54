from .database import init_db, get_database, close_db
from .models import ShiftDoc, OrganizationSettingsDoc
from .repository import BeanieShiftRepository, BeanieOrganizationSettingsRepository

__all__ = [
    "init_db",
    "get_database",
    "close_db",
    "ShiftDoc",
    "OrganizationSettingsDoc",
    "BeanieShiftRepository",
    "BeanieOrganizationSettingsRepository",
]
