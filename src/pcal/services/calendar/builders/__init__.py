"""
Calendar builders package.
"""

from pcal.services.calendar.builders.calendar_builder import CalendarBuilder, serialize_event
from pcal.services.calendar.builders.event_builder import EventBuilder, build_rrule

__all__ = [
    'CalendarBuilder',
    'EventBuilder',
    'build_rrule',
    'serialize_event'
]
