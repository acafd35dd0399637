"""
Date filters for listing events.

Each filter maps to a concrete Window relative to "now". With no flags at all
the filter is UPCOMING: from the start of today onwards, never all history.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from pcal.exceptions import ValidationError
from pcal.services.recurrence import Window
from pcal.utils.timezone_utils import midnight


class FilterKind(Enum):
    """Kinds of date filters."""
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    RANGE = "range"
    UPCOMING = "upcoming"

@dataclass(frozen=True)
class DateFilter:
    """Selection of occurrences by date.

    ``from_date`` and ``until_date`` only apply to RANGE; both are inclusive
    calendar days and either may be missing (open on that side).
    """
    kind: FilterKind = FilterKind.UPCOMING
    from_date: Optional[date] = None
    until_date: Optional[date] = None

    def __post_init__(self) -> None:
        if self.kind is not FilterKind.RANGE and (self.from_date or self.until_date):
            raise ValidationError(f"The {self.kind.value} filter takes no dates")
        if self.from_date and self.until_date and self.until_date < self.from_date:
            raise ValidationError(
                "Filter end date is before its start date",
                {"from": self.from_date.isoformat(), "until": self.until_date.isoformat()}
            )

    @classmethod
    def today(cls) -> 'DateFilter':
        return cls(FilterKind.TODAY)

    @classmethod
    def week(cls) -> 'DateFilter':
        return cls(FilterKind.WEEK)

    @classmethod
    def month(cls) -> 'DateFilter':
        return cls(FilterKind.MONTH)

    @classmethod
    def upcoming(cls) -> 'DateFilter':
        return cls(FilterKind.UPCOMING)

    @classmethod
    def between(cls, from_date: Optional[date] = None, until_date: Optional[date] = None) -> 'DateFilter':
        return cls(FilterKind.RANGE, from_date, until_date)

    @classmethod
    def from_flags(
        cls,
        today: bool = False,
        week: bool = False,
        month: bool = False,
        from_date: Optional[date] = None,
        until_date: Optional[date] = None,
    ) -> 'DateFilter':
        """Build a filter from command line style flags.

        Raises:
            ValidationError: If more than one kind of filter is requested
        """
        chosen = [kind for kind, flag in (
            (FilterKind.TODAY, today),
            (FilterKind.WEEK, week),
            (FilterKind.MONTH, month),
            (FilterKind.RANGE, from_date is not None or until_date is not None),
        ) if flag]
        if len(chosen) > 1:
            raise ValidationError(
                "Choose only one of today, week, month or a from/until range",
                {"filters": [kind.value for kind in chosen]}
            )
        if not chosen:
            return cls.upcoming()
        if chosen[0] is FilterKind.RANGE:
            return cls.between(from_date, until_date)
        return cls(chosen[0])

    def describe(self) -> str:
        if self.kind is FilterKind.RANGE:
            start = self.from_date.isoformat() if self.from_date else "the beginning"
            if self.until_date:
                return f"from {start} until {self.until_date.isoformat()}"
            return f"from {start} onwards"
        return self.kind.value

def _day_start(day: date, now: datetime) -> datetime:
    return datetime.combine(day, time(), tzinfo=now.tzinfo)

def window_for(date_filter: DateFilter, now: datetime, first_weekday: int = 0) -> Window:
    """Concrete window for a filter.

    Days start at midnight in the timezone of ``now``.

    Args:
        date_filter: Filter to resolve
        now: Current time, timezone aware
        first_weekday: First day of the week, 0 = Monday ... 6 = Sunday
    """
    if now.utcoffset() is None:
        raise ValidationError("Current time must carry a UTC offset")
    if not 0 <= first_weekday <= 6:
        raise ValidationError("first_weekday must be between 0 and 6", {"first_weekday": first_weekday})

    today_start = midnight(now)
    kind = date_filter.kind

    if kind is FilterKind.TODAY:
        return Window(today_start, _day_start(now.date() + timedelta(days=1), now), end_inclusive=False)

    if kind is FilterKind.WEEK:
        days_back = (now.weekday() - first_weekday) % 7
        week_start = now.date() - timedelta(days=days_back)
        return Window(
            _day_start(week_start, now), _day_start(week_start + timedelta(days=7), now), end_inclusive=False
        )

    if kind is FilterKind.MONTH:
        month_start = now.date().replace(day=1)
        if month_start.month == 12:
            next_month = month_start.replace(year=month_start.year + 1, month=1)
        else:
            next_month = month_start.replace(month=month_start.month + 1)
        return Window(_day_start(month_start, now), _day_start(next_month, now), end_inclusive=False)

    if kind is FilterKind.RANGE:
        start = _day_start(date_filter.from_date, now) if date_filter.from_date else None
        end = (
            _day_start(date_filter.until_date + timedelta(days=1), now)
            if date_filter.until_date else None
        )
        return Window(start, end, end_inclusive=False)

    return Window(today_start, None, end_inclusive=False)

def matches(occurrence_time: datetime, date_filter: DateFilter, now: datetime, first_weekday: int = 0) -> bool:
    """Whether an occurrence start falls inside the filter's window."""
    return window_for(date_filter, now, first_weekday).contains(occurrence_time)
