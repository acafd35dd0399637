"""Configuration type definitions."""

from dataclasses import dataclass, field
from typing import Any, Optional, TypedDict

from pcal.config.logging_config import LoggingConfig

class LoggingSection(TypedDict, total=False):
    """``logging`` section of config.yaml."""
    default_level: str
    verbose_level: str
    file: dict[str, Any] | str
    console: dict[str, Any]
    libraries: dict[str, str]
    error_aggregation: dict[str, Any]

class GlobalConfig(TypedDict, total=False):
    """Merged environment and config.yaml structure."""
    timezone: str
    data_dir: str
    default_calendar: str
    first_weekday: int
    expansion_horizon_days: int
    default_duration_minutes: int
    logging: LoggingSection

@dataclass
class AppConfig:
    """Application configuration."""
    data_dir: str
    config_dir: str
    timezone: str = "UTC"
    default_calendar: str = "calendar"
    first_weekday: int = 0
    expansion_horizon_days: int = 365
    default_duration_minutes: int = 60
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    global_config: GlobalConfig = field(default_factory=lambda: GlobalConfig())

    @property
    def log_file(self) -> Optional[str]:
        """Configured log file, if file logging is enabled."""
        if self.logging.file.enabled:
            return self.logging.file.path
        return None
