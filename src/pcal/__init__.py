"""
Personal calendar application.
"""

__version__ = '0.1.0'

from .exceptions import (
    CalendarExistsError,
    CalendarNotFoundError,
    ConfigError,
    DuplicateError,
    NotFoundError,
    ParseError,
    PcalError,
    RecurrenceBoundError,
    StorageError,
    ValidationError,
)

__all__ = [
    'CalendarExistsError',
    'CalendarNotFoundError',
    'ConfigError',
    'DuplicateError',
    'NotFoundError',
    'ParseError',
    'PcalError',
    'RecurrenceBoundError',
    'StorageError',
    'ValidationError'
]
