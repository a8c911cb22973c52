"""Date helpers bound to the school's configured timezone."""

from datetime import date, datetime
from typing import Optional, Union
from zoneinfo import ZoneInfo

from ..config import settings


def now(tz: Optional[str] = None) -> datetime:
    """Current wall-clock time in the school's timezone."""
    return datetime.now(ZoneInfo(tz or settings.TIMEZONE))


def today(tz: Optional[str] = None) -> date:
    return now(tz).date()


def format_date(value: Union[date, str, None]) -> str:
    """Format as dd/MM/yyyy; unparseable strings are returned unchanged."""
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    return value.strftime("%d/%m/%Y")
