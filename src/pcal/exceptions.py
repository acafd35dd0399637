"""Centralized error definitions for the personal calendar application."""

import logging
import traceback
from collections.abc import Callable
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any
from typing import TypeVar

from pcal.config.error_aggregator import aggregate_error
from pcal.error_codes import ErrorCode


logger = logging.getLogger(__name__)

T = TypeVar('T')

@dataclass
class PcalError(Exception):
    """Base exception for all calendar errors."""
    message: str
    code: ErrorCode
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Code: {self.code.value}, Details: {self.details})"
        return f"{self.message} (Code: {self.code.value})"

class ValidationError(PcalError):
    """Invalid event fields or command flags."""
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.VALIDATION_FAILED, details)

class DuplicateError(PcalError):
    """An event with the same id is already stored."""
    def __init__(self, message: str, event_id: str):
        super().__init__(message, ErrorCode.DUPLICATE_EVENT, {"event_id": event_id})
        self.event_id = event_id

class NotFoundError(PcalError):
    """No stored event matches the requested id."""
    def __init__(self, message: str, event_id: str, details: dict[str, Any] | None = None):
        details = details or {}
        details["event_id"] = event_id
        super().__init__(message, ErrorCode.EVENT_NOT_FOUND, details)
        self.event_id = event_id

class RecurrenceBoundError(PcalError):
    """Unbounded recurrence requested without a finite window."""
    def __init__(self, message: str, event_id: str | None = None):
        super().__init__(message, ErrorCode.RECURRENCE_UNBOUNDED, {"event_id": event_id} if event_id else None)

@dataclass
class BlockError:
    """Failure to read a single VEVENT block."""
    index: int
    message: str
    field: str | None = None

    def __str__(self) -> str:
        where = f"VEVENT #{self.index + 1}"
        if self.field:
            where = f"{where} ({self.field})"
        return f"{where}: {self.message}"

class ParseError(PcalError):
    """Malformed iCalendar input."""
    def __init__(self, message: str, block_errors: list[BlockError] | None = None):
        self.block_errors = list(block_errors or [])
        details = {"blocks": [str(error) for error in self.block_errors]} if self.block_errors else None
        super().__init__(message, ErrorCode.PARSE_FAILED, details)

class ConfigError(PcalError):
    """Configuration error."""
    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.CONFIG_INVALID, details)

class StorageError(PcalError):
    """Calendar storage error."""
    def __init__(self, message: str, code: ErrorCode = ErrorCode.STORAGE_ERROR, details: dict[str, Any] | None = None):
        super().__init__(message, code, details)

class CalendarNotFoundError(StorageError):
    """Calendar does not exist in the data directory."""
    def __init__(self, name: str):
        super().__init__(f"Calendar '{name}' not found", ErrorCode.CALENDAR_NOT_FOUND, {"calendar": name})

class CalendarExistsError(StorageError):
    """Calendar already exists in the data directory."""
    def __init__(self, name: str):
        super().__init__(f"Calendar '{name}' already exists", ErrorCode.CALENDAR_EXISTS, {"calendar": name})

@contextmanager
def handle_errors(
    error_type: type[PcalError],
    service: str,
    operation: str,
    fallback: Callable[[], T] | None = None
) -> Iterator[None]:
    """Handle errors in a context manager.

    Typed errors are recorded and re-raised unchanged. Anything else is
    logged with its traceback first. When a fallback is given it is called
    instead of re-raising; a fallback that raises replaces the error.

    Args:
        error_type: The error type to catch
        service: The service name
        operation: The operation name
        fallback: Optional function to call if an error occurs
    """
    try:
        yield
    except error_type as e:
        aggregate_error(str(e), service, _format_tb(e))
        if fallback:
            fallback()
            return
        raise
    except PcalError as e:
        aggregate_error(str(e), service, _format_tb(e))
        raise
    except Exception as e:
        logger.error(
            f"Unexpected error in {service}.{operation}: {e}",
            exc_info=True
        )
        aggregate_error(str(e), service, _format_tb(e))
        if fallback:
            fallback()
            return
        raise

def _format_tb(error: BaseException) -> str | None:
    if error.__traceback__ is None:
        return None
    return "".join(traceback.format_tb(error.__traceback__))
