"""
Calendar builder for the personal calendar application.
"""

from datetime import datetime

from icalendar import Calendar as ICalCalendar
from icalendar import vText

from pcal.models.calendar import Calendar
from pcal.models.event import Event
from pcal.services.calendar.builders.event_builder import EventBuilder
from pcal.utils.logging_utils import LoggerMixin

PRODID = '-//pcal//Personal Calendar//EN'


class CalendarBuilder(LoggerMixin):
    """Builder for VCALENDAR objects."""

    def __init__(self, stamp: datetime | None = None):
        """Initialize calendar builder."""
        super().__init__()
        self.event_builder = EventBuilder(stamp=stamp)

    def build_base_calendar(self, name: str) -> ICalCalendar:
        """Create base calendar with metadata."""
        calendar = ICalCalendar()
        calendar.add('prodid', vText(PRODID))
        calendar.add('version', vText('2.0'))
        calendar.add('calscale', vText('GREGORIAN'))
        calendar.add('method', vText('PUBLISH'))
        calendar.add('x-wr-calname', vText(name))
        return calendar

    def build_calendar(self, calendar: Calendar) -> ICalCalendar:
        """VCALENDAR holding one VEVENT per stored event, in stored order."""
        ical = self.build_base_calendar(calendar.name)
        for event in calendar.events.values():
            ical.add_component(self.event_builder.build(event))
        self.logger.debug(f"Built calendar {calendar.name} with {len(calendar)} events")
        return ical

    def build_events(self, name: str, events: list[Event]) -> ICalCalendar:
        """VCALENDAR for an arbitrary list of events."""
        ical = self.build_base_calendar(name)
        for event in events:
            ical.add_component(self.event_builder.build(event))
        return ical

    def to_ical(self, calendar: Calendar) -> str:
        """Serialize a calendar to iCalendar text."""
        return self.build_calendar(calendar).to_ical().decode('utf-8')

def serialize_event(event: Event, stamp: datetime | None = None) -> str:
    """iCalendar text for a single event wrapped in a VCALENDAR."""
    builder = CalendarBuilder(stamp=stamp)
    return builder.build_events(event.title, [event]).to_ical().decode('utf-8')
