"""
iCalendar import and export.
"""

from pcal.services.calendar.builders import CalendarBuilder, EventBuilder, serialize_event
from pcal.services.calendar.parser import ParsedBlock, ParseResult, parse_calendar, parse_event

__all__ = [
    'CalendarBuilder',
    'EventBuilder',
    'ParseResult',
    'ParsedBlock',
    'parse_calendar',
    'parse_event',
    'serialize_event'
]
