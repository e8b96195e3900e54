from .time import as_aware, ensure_utc, utc_now
from .log import setup_logging

__all__ = ["as_aware", "ensure_utc", "utc_now", "setup_logging"]
