"""
Unit Tests - Logging Configuration
"""
import json
import logging

import pytest
import structlog

from ormbench.config import Settings
from ormbench.config.logging import ENGINE_LOGGER, QUIET_LOGGERS, configure_logging
from ormbench.config.settings import DatabaseSettings, MonitoringSettings
from ormbench.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def restore_logging():
    """Drop the handler configure_logging installs and reset levels"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)
    for name in (ENGINE_LOGGER, *QUIET_LOGGERS):
        logging.getLogger(name).setLevel(logging.NOTSET)
    structlog.reset_defaults()


def _settings(monkeypatch, log_format: str = "json", echo: bool = False) -> Settings:
    monkeypatch.setenv("LOG_FORMAT", log_format)
    return Settings(database=DatabaseSettings(echo=echo), monitoring=MonitoringSettings())


class TestConfigureLogging:
    """Tests for configure_logging"""

    def test_json_lines(self, monkeypatch, capsys):
        """Test events are written to stdout as JSON with their context"""
        configure_logging("INFO", _settings(monkeypatch))

        with structlog.contextvars.bound_contextvars(dataset="oltp"):
            structlog.get_logger("ormbench.tests").info("Batch loaded", table="users", batch_index=2)

        event = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert event["event"] == "Batch loaded"
        assert event["level"] == "info"
        assert event["dataset"] == "oltp"
        assert event["table"] == "users"
        assert event["batch_index"] == 2

    def test_level_filters(self, monkeypatch, capsys):
        """Test events below the configured level are dropped"""
        configure_logging("WARNING", _settings(monkeypatch))

        structlog.get_logger("ormbench.tests").info("Batch loaded")

        assert capsys.readouterr().out == ""

    def test_sql_echo(self, monkeypatch):
        """Test statement logging follows the echo setting, not the root level"""
        configure_logging("DEBUG", _settings(monkeypatch, echo=False))
        assert logging.getLogger(ENGINE_LOGGER).level == logging.WARNING

        configure_logging("WARNING", _settings(monkeypatch, echo=True))
        assert logging.getLogger(ENGINE_LOGGER).level == logging.INFO

    def test_driver_loggers_quiet(self, monkeypatch):
        """Test Faker and driver debug records stay off at DEBUG"""
        configure_logging("DEBUG", _settings(monkeypatch))

        assert logging.getLogger().level == logging.DEBUG
        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_unknown_format(self, monkeypatch):
        """Test an unsupported format is a configuration error"""
        with pytest.raises(ConfigurationError):
            configure_logging("INFO", _settings(monkeypatch, log_format="xml"))

    def test_unknown_level(self, monkeypatch):
        """Test an unknown level name is a configuration error"""
        with pytest.raises(ConfigurationError):
            configure_logging("LOUD", _settings(monkeypatch))
