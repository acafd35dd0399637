"""
Recurrence expansion.

Occurrences are computed from the event's anchor start (the k-th occurrence is
``start + k * step``) instead of stepping from the previous occurrence, so a
clamped month end (Jan 31 -> Feb 29) does not drift into later months.
"""

import calendar as std_calendar
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from pcal.exceptions import RecurrenceBoundError, ValidationError
from pcal.models.event import Event, Frequency, RecurrenceRule

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Window:
    """Time range ``[start, end]``; None leaves a side open.

    The end is inclusive unless ``end_inclusive`` is False, which makes the
    range half-open ``[start, end)`` as the date filters use it.
    """
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    end_inclusive: bool = True

    def __post_init__(self) -> None:
        for name in ("start", "end"):
            value = getattr(self, name)
            if value is not None and value.utcoffset() is None:
                raise ValidationError(f"Window {name} must carry a UTC offset")
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValidationError(
                "Window end must not be before its start",
                {"start": self.start.isoformat(), "end": self.end.isoformat()}
            )

    @property
    def bounded(self) -> bool:
        return self.end is not None

    def contains(self, moment: datetime) -> bool:
        if self.start is not None and moment < self.start:
            return False
        if self.end is not None and not self.within_end(moment):
            return False
        return True

    def within_end(self, moment: datetime) -> bool:
        """Whether ``moment`` is not past the end; the end must be set."""
        if self.end_inclusive:
            return moment <= self.end
        return moment < self.end

    def capped(self, end: datetime) -> 'Window':
        """Same window with the upper bound limited to ``end``."""
        if self.end is not None and self.end <= end:
            return self
        start = self.start if self.start is None or self.start <= end else end
        return Window(start, end, self.end_inclusive)

def clamp_day(year: int, month: int, day: int) -> int:
    """Largest valid day of month not after ``day``.

    Jan 31 moved to February becomes Feb 28 (Feb 29 in leap years).
    """
    return min(day, std_calendar.monthrange(year, month)[1])

def add_months(moment: datetime, months: int) -> datetime:
    """Shift by whole calendar months, clamping the day of month."""
    month_index = moment.year * 12 + (moment.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    return moment.replace(year=year, month=month, day=clamp_day(year, month, moment.day))

def nth_occurrence(start: datetime, rule: RecurrenceRule, index: int) -> datetime:
    """The occurrence ``index`` steps after ``start`` (index 0 is start)."""
    steps = index * rule.interval
    if rule.frequency is Frequency.DAILY:
        return start + timedelta(days=steps)
    if rule.frequency is Frequency.WEEKLY:
        return start + timedelta(weeks=steps)
    if rule.frequency is Frequency.MONTHLY:
        return add_months(start, steps)
    return add_months(start, 12 * steps)

def _first_index(start: datetime, rule: RecurrenceRule, window_start: Optional[datetime]) -> int:
    """An index whose occurrence is not after the first one inside the window."""
    if window_start is None or window_start <= start:
        return 0

    if rule.frequency in (Frequency.DAILY, Frequency.WEEKLY):
        step = timedelta(days=rule.interval * (7 if rule.frequency is Frequency.WEEKLY else 1))
        return (window_start - start) // step

    local = window_start.astimezone(start.tzinfo)
    months = (local.year - start.year) * 12 + (local.month - start.month)
    step_months = rule.interval * (12 if rule.frequency is Frequency.YEARLY else 1)
    return max(0, months // step_months - 1)

class OccurrenceSequence:
    """Lazy, restartable sequence of occurrence starts inside a window.

    Every ``iter()`` starts a fresh expansion. Starts are strictly increasing.
    """

    def __init__(self, event: Event, window: Window):
        if event.recurrence is not None and not event.recurrence.bounded and not window.bounded:
            raise RecurrenceBoundError(
                f"Event '{event.title}' repeats forever and needs a window with an end",
                event.id
            )
        self.event = event
        self.window = window

    def __iter__(self) -> Iterator[datetime]:
        rule = self.event.recurrence
        if rule is None:
            if self.window.contains(self.event.start):
                yield self.event.start
            return
        yield from _expand(self.event.start, rule, self.window)

    def __repr__(self) -> str:
        return f"OccurrenceSequence(event={self.event.id!r}, window={self.window!r})"

    def first(self) -> Optional[datetime]:
        """First occurrence in the window, if any."""
        return next(iter(self), None)

def _expand(start: datetime, rule: RecurrenceRule, window: Window) -> Iterator[datetime]:
    index = _first_index(start, rule, window.start)
    while True:
        if rule.count is not None and index >= rule.count:
            return
        moment = nth_occurrence(start, rule, index)
        if rule.until is not None and moment > rule.until:
            return
        if window.end is not None and not window.within_end(moment):
            return
        if window.start is None or moment >= window.start:
            yield moment
        index += 1

def occurrences_in(event: Event, window: Window) -> OccurrenceSequence:
    """Occurrences of ``event`` starting inside ``window``.

    Raises:
        RecurrenceBoundError: If the event repeats forever and the window has
            no end
    """
    return OccurrenceSequence(event, window)

def iter_rule(event: Event) -> Iterator[datetime]:
    """Every occurrence of an event whose rule ends on its own.

    Raises:
        RecurrenceBoundError: For a rule without count or until
    """
    return iter(OccurrenceSequence(event, Window()))

def next_occurrence(event: Event, after: datetime) -> Optional[datetime]:
    """First occurrence at or after ``after``, however far away, None if none is left."""
    rule = event.recurrence
    if rule is None:
        return event.start if event.start >= after else None
    index = _first_index(event.start, rule, after)
    while rule.count is None or index < rule.count:
        moment = nth_occurrence(event.start, rule, index)
        if rule.until is not None and moment > rule.until:
            return None
        if moment >= after:
            return moment
        index += 1
    return None

def last_occurrence(event: Event) -> Optional[datetime]:
    """Final occurrence of a bounded event, None if it never occurs.

    Raises:
        RecurrenceBoundError: For a rule without count or until
    """
    last = None
    for moment in iter_rule(event):
        last = moment
    return last

def count_occurrences(event: Event) -> Optional[int]:
    """Number of occurrences, None for rules that never end."""
    if event.recurrence is not None and not event.recurrence.bounded:
        return None
    return sum(1 for _ in iter_rule(event))
