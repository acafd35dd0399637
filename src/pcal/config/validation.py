"""Configuration validation utilities."""

from pcal.config.types import AppConfig
from pcal.exceptions import ConfigError
from pcal.utils.timezone_utils import TimezoneManager

LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}

def validate_timezone(name: str) -> None:
    """Check that an IANA timezone name resolves."""
    if not TimezoneManager.is_valid_timezone(name):
        raise ConfigError(f"Invalid timezone {name}", {"timezone": name})

def validate_config(config: AppConfig) -> None:
    """Validate a loaded configuration.

    Raises:
        ConfigError: If any value is out of range
    """
    validate_timezone(config.timezone)

    if not 0 <= config.first_weekday <= 6:
        raise ConfigError(
            "first_weekday must be between 0 (Monday) and 6 (Sunday)",
            {"first_weekday": config.first_weekday}
        )

    if config.expansion_horizon_days <= 0:
        raise ConfigError(
            "expansion_horizon_days must be positive",
            {"expansion_horizon_days": config.expansion_horizon_days}
        )

    if config.default_duration_minutes < 0:
        raise ConfigError(
            "default_duration_minutes must not be negative",
            {"default_duration_minutes": config.default_duration_minutes}
        )

    if not config.default_calendar or '/' in config.default_calendar:
        raise ConfigError(
            "default_calendar must be a plain name",
            {"default_calendar": config.default_calendar}
        )

    for level in (config.logging.default_level, config.logging.verbose_level):
        if level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level {level}", {"level": level})
