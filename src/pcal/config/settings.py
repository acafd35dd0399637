"""Configuration settings for the personal calendar application."""

import os
from pathlib import Path
from typing import Any

import yaml

from pcal.config.env import EnvConfig
from pcal.config.env import default_config_dir
from pcal.config.logging_config import load_logging_config
from pcal.config.types import AppConfig
from pcal.config.types import GlobalConfig
from pcal.config.utils import deep_merge
from pcal.config.utils import resolve_path
from pcal.config.validation import validate_config
from pcal.exceptions import ConfigError


CONFIG_FILE_NAME = "config.yaml"

class ConfigurationManager:
    """Centralized configuration management with caching."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config: AppConfig | None = None
        self._config_path: Path | None = None
        self._initialized = True

    @property
    def config(self) -> AppConfig:
        """Get the current configuration, loading it if necessary."""
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")
        return self._config

    def load_config(self, config_dir: str | None = None) -> AppConfig:
        """Load configuration with caching."""
        if self._config is not None:
            return self._config

        self._config_path = _get_config_path(config_dir)
        global_config = _load_global_config(self._config_path)
        self._config = _build_app_config(global_config, self._config_path)
        validate_config(self._config)
        return self._config

    def reload_config(self, config_dir: str | None = None) -> AppConfig:
        """Force reload configuration."""
        self._config = None
        return self.load_config(config_dir)

    @classmethod
    def reset(cls) -> None:
        """Drop the cached instance (used between CLI invocations in tests)."""
        cls._instance = None

def _get_config_path(config_dir: str | None = None) -> Path:
    """Get configuration directory path."""
    return resolve_path(
        config_dir or os.getenv("PCAL_CONFIG_DIR") or default_config_dir()
    )

def _load_global_config(config_path: Path) -> GlobalConfig:
    """Load global configuration from YAML file and environment."""
    global_config = EnvConfig.get_global_config()

    config_file = config_path / CONFIG_FILE_NAME
    if config_file.exists():
        try:
            with open(config_file, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_file}", {"error": str(e)})
        if not isinstance(loaded_config, dict):
            raise ConfigError(f"{config_file} must contain a mapping", {"file": str(config_file)})
        global_config = deep_merge(global_config, loaded_config)

    # Explicit environment variables win over the file
    EnvConfig.update_config_from_env(global_config)

    return global_config

def _as_int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer", {key: value})

def _build_app_config(global_config: GlobalConfig, config_path: Path) -> AppConfig:
    """Turn the merged mapping into an AppConfig."""
    logging_section = dict(global_config.get('logging') or {})
    if isinstance(logging_section.get('file'), str):
        logging_section['file'] = {'enabled': True, 'path': logging_section['file']}

    try:
        logging_config = load_logging_config(logging_section)
    except TypeError as e:
        raise ConfigError("Invalid logging section", {"error": str(e)})

    # Relative data directories live next to the config file
    data_dir = resolve_path(global_config.get('data_dir', 'data'), base_dir=config_path)

    return AppConfig(
        data_dir=str(data_dir),
        config_dir=str(config_path),
        timezone=str(global_config.get('timezone', 'UTC')),
        default_calendar=str(global_config.get('default_calendar', 'calendar')),
        first_weekday=_as_int(global_config.get('first_weekday', 0), 'first_weekday'),
        expansion_horizon_days=_as_int(global_config.get('expansion_horizon_days', 365), 'expansion_horizon_days'),
        default_duration_minutes=_as_int(global_config.get('default_duration_minutes', 60), 'default_duration_minutes'),
        logging=logging_config,
        global_config=global_config
    )

def load_config(config_dir: str | None = None) -> AppConfig:
    """Load configuration using the ConfigurationManager."""
    config_manager = ConfigurationManager()
    return config_manager.load_config(config_dir)
