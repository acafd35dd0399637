"""Error aggregation: repeated failures are grouped and reported once."""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from pcal.config.logging_config import ErrorAggregationConfig

@dataclass
class ErrorGroup:
    """Occurrences of one error message."""
    message: str
    count: int = 0
    services: set[str] = field(default_factory=set)
    stack_traces: set[str] = field(default_factory=set)

    def update(self, service: str, stack_trace: Optional[str] = None) -> None:
        self.count += 1
        self.services.add(service)
        if stack_trace:
            self.stack_traces.add(stack_trace)

class ErrorAggregator:
    """Collects errors by message until a threshold or shutdown."""

    def __init__(self, config: ErrorAggregationConfig):
        self._errors: dict[str, ErrorGroup] = {}
        self._lock = threading.Lock()
        self._config = config
        self.reported = 0

        self.logger = logging.getLogger('pcal.error_aggregator')

    def add_error(self, message: str, service: str, stack_trace: Optional[str] = None) -> None:
        """Record one occurrence; a group reaching the threshold is reported and dropped.

        Args:
            message: Error message, used as the grouping key
            service: Service where the error occurred
            stack_trace: Optional formatted traceback
        """
        if not self._config.enabled:
            return

        with self._lock:
            group = self._errors.setdefault(message, ErrorGroup(message=message))
            group.update(service, stack_trace)
            if group.count >= self._config.error_threshold:
                self._report(group)
                del self._errors[message]

    def pending(self) -> list[ErrorGroup]:
        """Groups collected but not reported yet."""
        with self._lock:
            return list(self._errors.values())

    def _report(self, group: ErrorGroup) -> None:
        self.reported += 1
        self.logger.debug(f"{group.message} (seen {group.count}x in {', '.join(sorted(group.services))})")
        if self._config.include_stack_traces:
            for trace in group.stack_traces:
                self.logger.debug(f"Stack trace:\n{trace}")

    def shutdown(self) -> None:
        """Report every remaining group."""
        if not self._config.enabled:
            return

        with self._lock:
            for group in self._errors.values():
                self._report(group)
            self._errors.clear()

_error_aggregator: Optional[ErrorAggregator] = None

def init_error_aggregator(config: ErrorAggregationConfig) -> ErrorAggregator:
    """Install the process-wide aggregator."""
    global _error_aggregator
    _error_aggregator = ErrorAggregator(config)
    return _error_aggregator

def get_error_aggregator() -> ErrorAggregator:
    """Raises RuntimeError until init_error_aggregator() has been called."""
    if _error_aggregator is None:
        raise RuntimeError("Error aggregator not initialized. Call init_error_aggregator first.")
    return _error_aggregator

def shutdown_error_aggregator() -> None:
    """Flush and drop the process-wide aggregator."""
    global _error_aggregator
    if _error_aggregator is not None:
        _error_aggregator.shutdown()
        _error_aggregator = None

def aggregate_error(message: str, service: str, stack_trace: Optional[str] = None) -> None:
    """Record an error with the process-wide aggregator.

    Does nothing before init_error_aggregator(), so the core can be used as a
    library without the CLI's logging setup.
    """
    if _error_aggregator is not None:
        _error_aggregator.add_error(message, service, stack_trace)
