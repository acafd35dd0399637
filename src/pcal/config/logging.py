"""Logging configuration utilities."""

import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from pcal.config.error_aggregator import init_error_aggregator
from pcal.config.logging_config import LoggingConfig
from pcal.config.types import AppConfig


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_timestamp: bool = True):
        """Initialize formatter.

        Args:
            include_timestamp: Whether to include timestamp in output
        """
        self.include_timestamp = include_timestamp
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON formatted string
        """
        data: dict[str, Any] = {
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        if self.include_timestamp:
            data['timestamp'] = datetime.fromtimestamp(record.created).isoformat()

        if record.exc_info:
            data['exception'] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            data.update(record.extra_fields)

        return json.dumps(data)

class ColoredFormatter(logging.Formatter):
    """Formatter that adds color to console output."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with color.

        Args:
            record: Log record to format

        Returns:
            Colored string
        """
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S,%f')[:-3]
        msg = record.getMessage()

        context = ""
        if hasattr(record, 'extra_fields'):
            fields = [f"\n    {key}: {value}" for key, value in record.extra_fields.items()]
            if fields:
                context = " |" + "".join(fields)

        if record.exc_info:
            msg = f"{msg}\n{self.formatException(record.exc_info)}"

        line = f"{timestamp} - {record.name} - {record.levelname} - {msg}{context}"
        if not self.use_color:
            return line
        color = self.COLORS.get(record.levelname, self.RESET)
        return f"{color}{line}{self.RESET}"

def get_console_handler(formatter: logging.Formatter) -> logging.StreamHandler:
    """Create console handler writing to stderr.

    Args:
        formatter: Formatter to use

    Returns:
        Configured console handler
    """
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    return console_handler

def get_file_handler(log_file: str | Path, formatter: logging.Formatter) -> logging.FileHandler:
    """Create file handler, creating the log directory if needed.

    Args:
        log_file: Path to log file
        formatter: Formatter to use

    Returns:
        Configured file handler
    """
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    file_handler = logging.FileHandler(log_file, encoding='utf-8')
    file_handler.setFormatter(formatter)
    return file_handler

def setup_logging(config: AppConfig | None = None, verbose: bool = False, log_file: str | None = None) -> None:
    """Set up logging configuration."""
    logging_config = config.logging if config else LoggingConfig()

    level_name = logging_config.verbose_level if verbose else logging_config.default_level
    level = getattr(logging, level_name.upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else level)

    # Clear any existing handlers
    root_logger.handlers.clear()

    if logging_config.console.enabled:
        console_handler = get_console_handler(
            ColoredFormatter(use_color=logging_config.console.color and sys.stderr.isatty())
        )
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

    # Command line --log-file wins over the configured file
    file_path = log_file or (logging_config.file.path if logging_config.file.enabled else None)
    if file_path:
        if logging_config.file.format == 'json':
            formatter: logging.Formatter = JsonFormatter(include_timestamp=logging_config.file.include_timestamp)
        else:
            formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        file_handler = get_file_handler(file_path, formatter)
        file_handler.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)

    for library, library_level in logging_config.libraries.items():
        logging.getLogger(library).setLevel(getattr(logging, library_level.upper(), logging.WARNING))

    init_error_aggregator(logging_config.error_aggregation)
