"""Logging configuration types and loading utilities."""

from dataclasses import dataclass, field
from typing import Any, Optional

@dataclass
class FileConfig:
    """File logging configuration."""
    enabled: bool = False
    path: Optional[str] = None
    format: str = 'text'
    include_timestamp: bool = True

@dataclass
class ConsoleConfig:
    """Console logging configuration."""
    enabled: bool = True
    color: bool = True

@dataclass
class ErrorAggregationConfig:
    """Error aggregation configuration."""
    enabled: bool = True
    error_threshold: int = 5
    include_stack_traces: bool = False

@dataclass
class LoggingConfig:
    """Complete logging configuration."""
    default_level: str = 'WARNING'
    verbose_level: str = 'DEBUG'
    file: FileConfig = field(default_factory=FileConfig)
    console: ConsoleConfig = field(default_factory=ConsoleConfig)
    libraries: dict[str, str] = field(default_factory=lambda: {
        'icalendar': 'WARNING',
        'yaml': 'WARNING',
    })
    error_aggregation: ErrorAggregationConfig = field(default_factory=ErrorAggregationConfig)

def load_logging_config(config_dict: Optional[dict[str, Any]] = None) -> LoggingConfig:
    """Build logging configuration from the ``logging`` section of config.yaml."""
    config_dict = config_dict or {}

    file_section = config_dict.get('file') or {}
    if isinstance(file_section, str):
        # Shorthand: "file: path/to/pcal.log"
        file_section = {'enabled': True, 'path': file_section}

    defaults = LoggingConfig()
    libraries = dict(defaults.libraries)
    libraries.update(config_dict.get('libraries') or {})

    return LoggingConfig(
        default_level=str(config_dict.get('default_level', defaults.default_level)).upper(),
        verbose_level=str(config_dict.get('verbose_level', defaults.verbose_level)).upper(),
        file=FileConfig(
            enabled=bool(file_section.get('enabled', bool(file_section.get('path')))),
            path=file_section.get('path'),
            format=file_section.get('format', 'text'),
            include_timestamp=file_section.get('include_timestamp', True)
        ),
        console=ConsoleConfig(**(config_dict.get('console') or {})),
        libraries=libraries,
        error_aggregation=ErrorAggregationConfig(**(config_dict.get('error_aggregation') or {}))
    )
