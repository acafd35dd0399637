"""Pytest configuration and shared fixtures."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from pcal.config.env import EnvConfig
from pcal.config.error_aggregator import shutdown_error_aggregator
from pcal.config.settings import ConfigurationManager
from pcal.config.types import AppConfig
from pcal.models.calendar import Calendar
from pcal.models.event import make_event, make_rule

# Saturday
NOW = datetime(2024, 6, 15, 10, 0, tzinfo=timezone.utc)

@pytest.fixture
def now():
    """Fixed current time used by service tests."""
    return NOW

@pytest.fixture
def config_dir(tmp_path):
    path = tmp_path / "config"
    path.mkdir()
    return path

@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"

@pytest.fixture
def app_config(config_dir, data_dir):
    """Default configuration pointing at temporary directories."""
    return AppConfig(data_dir=str(data_dir), config_dir=str(config_dir))

@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch, tmp_path):
    """Isolate tests from the user's environment and configuration."""
    for env_var in [*EnvConfig.ENV_MAPPING, "PCAL_CONFIG_DIR", "PCAL_VERBOSE_LOG_LEVEL"]:
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    ConfigurationManager.reset()

    root_logger = logging.getLogger()
    handlers = root_logger.handlers[:]
    level = root_logger.level

    yield

    ConfigurationManager.reset()
    shutdown_error_aggregator()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)

@pytest.fixture
def standup():
    """Weekly meeting, five times from Monday 2024-06-03."""
    return make_event(
        "Standup",
        datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc),
        timedelta(minutes=15),
        location="Room 1",
        recurrence=make_rule("WEEKLY", count=5),
    )

@pytest.fixture
def dentist():
    """Single event later on the fixed day."""
    return make_event(
        "Dentist",
        datetime(2024, 6, 15, 14, 0, tzinfo=timezone(timedelta(hours=2))),
        timedelta(hours=1),
        location="Main Street 5",
        description="Bring insurance card",
    )

@pytest.fixture
def calendar(standup, dentist):
    cal = Calendar(name="personal")
    cal.events[standup.id] = standup
    cal.events[dentist.id] = dentist
    return cal
