"""
Check-in timestamp formatting
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

CHECKIN_FORMAT = "%m/%d/%Y, %I:%M:%S %p"

# Newer ICU puts a narrow no-break space before AM/PM in en-US strings
LOCALE_SPACES = str.maketrans({"\u202f": " ", "\xa0": " "})


def checkin_timestamp(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> str:
    """Render ``now`` as an en-US wall clock string in the check-in time zone.

    Produces e.g. ``10/19/2026, 9:05:03 PM`` (no zero padding on month, day or hour).
    A naive ``now`` is taken to be UTC.
    """
    zone = ZoneInfo(tz_name or settings.CHECKIN_TIMEZONE)
    if now is None:
        local = datetime.now(zone)
    else:
        if now.tzinfo is None:
            now = now.replace(tzinfo=ZoneInfo("UTC"))
        local = now.astimezone(zone)

    hour = local.hour % 12 or 12
    return f"{local.month}/{local.day}/{local.year}, {hour}:{local:%M:%S} {local:%p}"


def parse_checkin_timestamp(value) -> Optional[datetime]:
    """Parse a stored check-in string back to a naive local datetime"""
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.translate(LOCALE_SPACES).strip(), CHECKIN_FORMAT)
    except ValueError:
        return None
