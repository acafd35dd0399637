"""Timezone utilities for the application.

Events carry a single fixed UTC offset. The configured IANA timezone is only
used to interpret naive user input and to decide where "today" starts.
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

UTC = timezone.utc

DATETIME_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y %H:%M:%S",
)
DATE_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
)

_OFFSET_RE = re.compile(r'^(?P<sign>[+-])(?P<hours>\d{2}):?(?P<minutes>\d{2})$')


def fixed_offset(dt: datetime) -> datetime:
    """Replace the tzinfo of an aware datetime by its fixed UTC offset.

    Raises:
        ValueError: If dt is naive
    """
    offset = dt.utcoffset()
    if offset is None:
        raise ValueError(f"Datetime {dt.isoformat()} has no UTC offset")
    return dt.astimezone(timezone(offset))

def format_offset(offset: timedelta) -> str:
    """Format an offset as +HH:MM."""
    total_minutes = int(offset.total_seconds() // 60)
    sign = '-' if total_minutes < 0 else '+'
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"

def parse_offset(value: str) -> timezone:
    """Parse +HH:MM, +HHMM or Z into a fixed timezone.

    Raises:
        ValueError: If the value is not an offset
    """
    value = value.strip()
    if value.upper() == 'Z':
        return UTC
    match = _OFFSET_RE.match(value)
    if not match:
        raise ValueError(f"Invalid UTC offset: {value}")
    delta = timedelta(hours=int(match['hours']), minutes=int(match['minutes']))
    if match['sign'] == '-':
        delta = -delta
    return timezone(delta)

def midnight(dt: datetime) -> datetime:
    """Start of the day of dt, in dt's own timezone."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)

class TimezoneManager:
    """Manages timezone operations throughout the application."""

    def __init__(self, local_timezone: str = "UTC"):
        """Initialize timezone manager.

        Args:
            local_timezone: The local timezone to use. Defaults to UTC.

        Raises:
            ValueError: If the timezone is invalid
        """
        self.set_timezone(local_timezone)

    def set_timezone(self, timezone_name: str) -> None:
        """Set the local timezone.

        Args:
            timezone_name: IANA timezone name

        Raises:
            ValueError: If the timezone is invalid
        """
        try:
            self.local_tz = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Invalid timezone {timezone_name}: {e!s}")

    def localize_datetime(self, dt: datetime) -> datetime:
        """Attach the local offset to a naive datetime, convert an aware one."""
        if dt.tzinfo is None:
            return fixed_offset(dt.replace(tzinfo=self.local_tz))
        return fixed_offset(dt)

    def to_local(self, dt: datetime) -> datetime:
        """Convert datetime to local timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt.astimezone(self.local_tz)

    def now(self) -> datetime:
        """Get current time in local timezone."""
        return datetime.now(self.local_tz)

    def parse_datetime(self, value: str) -> datetime:
        """Parse user supplied date-time text.

        Accepts ``YYYY-MM-DD HH:MM``, ``DD/MM/YYYY HH:MM`` and ISO 8601 with
        or without an offset. A bare date means midnight. Naive values get
        the local offset in effect at that time.

        Raises:
            ValueError: If no format matches
        """
        text = value.strip()
        for fmt in DATETIME_FORMATS:
            try:
                return self.localize_datetime(datetime.strptime(text, fmt))
            except ValueError:
                continue
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            parsed = None
        if parsed is not None:
            return self.localize_datetime(parsed)
        try:
            return self.localize_datetime(datetime.combine(self.parse_date(text), time()))
        except ValueError:
            raise ValueError(f"Unrecognized date-time: {value}")

    @staticmethod
    def parse_date(value: str) -> date:
        """Parse ``YYYY-MM-DD`` or ``DD/MM/YYYY``.

        Raises:
            ValueError: If no format matches
        """
        text = value.strip()
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        raise ValueError(f"Unrecognized date: {value}")

    @staticmethod
    def is_valid_timezone(timezone_name: str) -> bool:
        """Check if a timezone name is valid.

        Args:
            timezone_name: IANA timezone name to check

        Returns:
            True if timezone is valid, False otherwise
        """
        try:
            ZoneInfo(timezone_name)
            return True
        except (ZoneInfoNotFoundError, ValueError):
            return False
