"""Contains all models commonly used across different modules."""
import pytz

from enum import Enum

from datetime import datetime


def utc_now() -> datetime:
    """Timezone aware current time, used as the default for timestamp fields."""
    return datetime.now(pytz.utc)


class SortType(str, Enum):
    """Sort direction accepted by list endpoints."""
    ASC = "asc"
    DESC = "desc"
