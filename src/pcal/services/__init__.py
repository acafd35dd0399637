"""Service implementations."""

from .calendar_repository import CalendarRepository
from .calendar_service import CalendarService
from .calendar_store import CalendarStore


__all__ = [
    'CalendarRepository',
    'CalendarService',
    'CalendarStore',
]
