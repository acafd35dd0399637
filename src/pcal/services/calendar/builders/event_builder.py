"""Event builder turning Event models into icalendar VEVENTs."""

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from icalendar import Event as ICalEvent
from icalendar import vDatetime, vRecur, vText

from pcal.models.event import Event, RecurrenceRule
from pcal.services.recurrence import nth_occurrence
from pcal.utils.logging_utils import LoggerMixin
from pcal.utils.timezone_utils import format_offset

UID_DOMAIN = "pcal"
OFFSET_PROPERTY = "X-PCAL-UTC-OFFSET"

# ZoneInfo("UTC") is written with the trailing Z by every icalendar release
ICAL_UTC = ZoneInfo("UTC")

def to_ical_utc(moment: datetime) -> datetime:
    """Normalize an aware datetime to UTC for DTSTART/DTEND/UNTIL."""
    return moment.astimezone(ICAL_UTC)

def build_rrule(rule: RecurrenceRule, start: datetime) -> vRecur:
    """RRULE value with INTERVAL only when it is not 1.

    A rule with both a count and an until date is written with whichever of
    the two ends it first, since RRULE allows only one of them.
    """
    parts: dict[str, Any] = {'FREQ': rule.frequency.value}
    if rule.interval != 1:
        parts['INTERVAL'] = rule.interval
    count, until = rule.count, rule.until
    if count is not None and until is not None:
        if nth_occurrence(start, rule, count - 1) <= until:
            until = None
        else:
            count = None
    if count is not None:
        parts['COUNT'] = count
    if until is not None:
        parts['UNTIL'] = to_ical_utc(until)
    return vRecur(parts)

class EventBuilder(LoggerMixin):
    """Builds a VEVENT component for one event."""

    def __init__(self, stamp: datetime | None = None) -> None:
        """Initialize builder.

        Args:
            stamp: DTSTAMP to write; defaults to the current time per event
        """
        super().__init__()
        self.stamp = stamp
        self.set_log_context(service="event_builder")

    def build(self, event: Event) -> ICalEvent:
        """Build a VEVENT from an event."""
        ical_event = ICalEvent()
        ical_event.add('uid', vText(f"{event.id}@{UID_DOMAIN}"))
        ical_event.add('dtstamp', vDatetime(to_ical_utc(self.stamp or datetime.now(ICAL_UTC))))
        ical_event.add('summary', vText(event.title))

        if event.location:
            ical_event.add('location', vText(event.location))
        if event.description:
            ical_event.add('description', vText(event.description))

        ical_event.add('dtstart', vDatetime(to_ical_utc(event.start)))
        ical_event.add('dtend', vDatetime(to_ical_utc(event.end)))

        if event.recurrence is not None:
            ical_event.add('rrule', build_rrule(event.recurrence, event.start))

        offset = event.start.utcoffset()
        if offset:
            ical_event.add(OFFSET_PROPERTY, vText(format_offset(offset)))

        self.debug(f"Built VEVENT for {event.id}", title=event.title)
        return ical_event
