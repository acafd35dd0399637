"""Environment variable handling for configuration."""

import os
from typing import Any

from pcal.config.types import GlobalConfig
from pcal.config.types import LoggingSection


def default_config_dir() -> str:
    """Config directory following the XDG base directory layout."""
    xdg_config = os.environ.get('XDG_CONFIG_HOME', os.path.expanduser('~/.config'))
    return os.path.join(xdg_config, 'pcal')

def default_data_dir() -> str:
    """Data directory following the XDG base directory layout."""
    xdg_data = os.environ.get('XDG_DATA_HOME', os.path.expanduser('~/.local/share'))
    return os.path.join(xdg_data, 'pcal')

class EnvConfig:
    """Environment variable configuration."""

    # Mapping of environment variables to configuration paths
    ENV_MAPPING = {
        'PCAL_TIMEZONE': ('timezone',),
        'PCAL_DATA_DIR': ('data_dir',),
        'PCAL_DEFAULT_CALENDAR': ('default_calendar',),
        'PCAL_FIRST_WEEKDAY': ('first_weekday',),
        'PCAL_EXPANSION_HORIZON_DAYS': ('expansion_horizon_days',),
        'PCAL_LOG_LEVEL': ('logging', 'default_level'),
        'PCAL_LOG_FILE': ('logging', 'file'),
    }

    @staticmethod
    def get_env_value(env_var: str, default: Any | None = None) -> Any | None:
        """Get value from environment variable with default."""
        return os.getenv(env_var, default)

    @staticmethod
    def _set_nested_value(config: dict[str, Any], path: tuple, value: Any) -> None:
        """Set value in nested dictionary using path tuple."""
        current = config
        for part in path[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]
        current[path[-1]] = value

    @classmethod
    def update_config_from_env(cls, config: dict[str, Any]) -> None:
        """Update configuration dictionary with environment variables.

        Args:
            config: Configuration dictionary to update
        """
        for env_var, path in cls.ENV_MAPPING.items():
            value = cls.get_env_value(env_var)
            if value is not None:
                cls._set_nested_value(config, path, value)

    @classmethod
    def get_logging_config(cls) -> LoggingSection:
        """Get logging configuration from environment."""
        section: LoggingSection = {
            'default_level': cls.get_env_value('PCAL_LOG_LEVEL', 'WARNING'),
            'verbose_level': cls.get_env_value('PCAL_VERBOSE_LOG_LEVEL', 'DEBUG'),
        }
        log_file = cls.get_env_value('PCAL_LOG_FILE')
        if log_file:
            section['file'] = {'enabled': True, 'path': log_file}
        return section

    @classmethod
    def get_global_config(cls) -> GlobalConfig:
        """Get global configuration from environment."""
        return {
            'timezone': cls.get_env_value('PCAL_TIMEZONE', 'UTC'),
            'data_dir': cls.get_env_value('PCAL_DATA_DIR', default_data_dir()),
            'default_calendar': cls.get_env_value('PCAL_DEFAULT_CALENDAR', 'calendar'),
            'first_weekday': cls.get_env_value('PCAL_FIRST_WEEKDAY', 0),
            'expansion_horizon_days': cls.get_env_value('PCAL_EXPANSION_HORIZON_DAYS', 365),
            'default_duration_minutes': 60,
            'logging': cls.get_logging_config()
        }
