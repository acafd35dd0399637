"""Error codes for the personal calendar application."""

from enum import Enum

class ErrorCode(Enum):
    """Enumeration of all possible error codes."""
    # Event Errors
    VALIDATION_FAILED = "validation_failed"
    DUPLICATE_EVENT = "duplicate_event"
    EVENT_NOT_FOUND = "event_not_found"
    RECURRENCE_UNBOUNDED = "recurrence_unbounded"
    
    # iCalendar Errors
    PARSE_FAILED = "parse_failed"
    
    # Configuration Errors
    CONFIG_INVALID = "config_invalid"
    
    # Storage Errors
    STORAGE_ERROR = "storage_error"
    CALENDAR_NOT_FOUND = "calendar_not_found"
    CALENDAR_EXISTS = "calendar_exists"
    
    # Service Errors
    SERVICE_ERROR = "service_error"
