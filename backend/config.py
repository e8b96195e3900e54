import os
from datetime import tzinfo

from dateutil import tz
from dotenv import load_dotenv

from compliance.types import ComplianceRules

load_dotenv()

# Wall-clock zone used for day and week boundaries
COMPLIANCE_TIMEZONE = os.getenv("COMPLIANCE_TIMEZONE", "Europe/Madrid")

# End estimate for time entries that are still clocked in
ASSUMED_OPEN_SHIFT_HOURS = float(os.getenv("ASSUMED_OPEN_SHIFT_HOURS", "8"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
    if origin.strip()
]


def compliance_timezone() -> tzinfo:
    zone = tz.gettz(COMPLIANCE_TIMEZONE)
    if zone is None:
        raise RuntimeError(f"Unknown COMPLIANCE_TIMEZONE: {COMPLIANCE_TIMEZONE}")
    return zone


def load_rules() -> ComplianceRules:
    return ComplianceRules(assumed_open_shift_hours=ASSUMED_OPEN_SHIFT_HOURS)
