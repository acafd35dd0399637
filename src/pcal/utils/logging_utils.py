"""
Logging helpers shared by services, builders and the CLI.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import Any
from typing import TypeVar

from typing_extensions import ParamSpec


T = TypeVar('T')
P = ParamSpec('P')

def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)

def log_execution(level: str = 'DEBUG') -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Log entry, exit and elapsed time of the decorated call."""
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            logger = logging.getLogger(func.__module__)
            log_level = getattr(logging, level)
            started = time.perf_counter()
            logger.log(log_level, f"Calling {func.__qualname__}")

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed = time.perf_counter() - started
                logger.log(log_level, f"{func.__qualname__} failed after {elapsed:.3f}s: {e.__class__.__name__}")
                raise
            elapsed = time.perf_counter() - started
            logger.log(log_level, f"{func.__qualname__} completed in {elapsed:.3f}s")
            return result

        return wrapper
    return decorator

class EnhancedLoggerMixin:
    """Mixin adding a module logger and key=value context to log lines."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(self.__class__.__module__)
        self._log_context: dict[str, Any] = {}

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def set_log_context(self, **kwargs: Any) -> None:
        """Context values appended to every later message."""
        self._log_context.update(kwargs)

    def _format_message(self, msg: str, **kwargs: Any) -> str:
        context = {**self._log_context, **kwargs}
        if not context:
            return msg
        return f"{msg} | Context: " + " | ".join(f"{k}={v}" for k, v in context.items())

    def debug(self, msg: str, **kwargs: Any) -> None:
        self.logger.debug(self._format_message(msg, **kwargs))

    def info(self, msg: str, **kwargs: Any) -> None:
        self.logger.info(self._format_message(msg, **kwargs))

    def warning(self, msg: str, **kwargs: Any) -> None:
        self.logger.warning(self._format_message(msg, **kwargs))

    def error(self, msg: str, **kwargs: Any) -> None:
        self.logger.error(self._format_message(msg, **kwargs))

class LoggerMixin(EnhancedLoggerMixin):
    """Logger mixin for builders, which log without context by default."""
