"""
Models package for the personal calendar.
Contains the event, recurrence rule and calendar value objects.
"""

from .calendar import Calendar
from .event import Event, Frequency, RecurrenceRule, compute_event_id, make_event, make_rule

__all__ = ['Calendar', 'Event', 'Frequency', 'RecurrenceRule', 'compute_event_id', 'make_event', 'make_rule']
