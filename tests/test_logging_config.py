"""Tests for structured logging."""

import json
import logging
import sys

import pytest

from src.logging_config.config import DEFAULT_LOGGING_CONFIG, LogFormat, LoggingConfig, LogLevel
from src.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    resolve_logging_config,
)
from src.logging_config.structured import StructuredLogger, get_logger


def _record(msg="hello world", level=logging.INFO, fields=None, exc_info=None):
    record = logging.LogRecord(
        name="test", level=level, pathname="test.py",
        lineno=1, msg=msg, args=(), exc_info=exc_info,
    )
    if fields is not None:
        record.fields = fields
    return record


@pytest.fixture
def restore_root_logger(monkeypatch):
    for var in ("LOG_LEVEL", "LOG_FORMAT", "APP_ENV"):
        monkeypatch.delenv(var, raising=False)
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLoggingConfig:
    """Tests for logging configuration dataclasses."""

    def test_default_config_values(self):
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.JSON
        assert config.include_caller is True
        assert config.service_name == "service"

    def test_custom_config(self):
        config = LoggingConfig(level=LogLevel.DEBUG, format=LogFormat.CONSOLE, service_name="orders")
        assert config.level == LogLevel.DEBUG
        assert config.format == LogFormat.CONSOLE
        assert config.service_name == "orders"

    def test_enum_values(self):
        assert LogLevel.WARNING.value == "WARNING"
        assert LogFormat.JSON.value == "json"
        assert LogFormat.CONSOLE.value == "console"


class TestStructuredFormatter:
    """Tests for JSON structured log formatting."""

    def test_formats_as_json(self):
        parsed = json.loads(StructuredFormatter().format(_record()))
        assert parsed["message"] == "hello world"
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "test"
        assert "timestamp" in parsed

    def test_includes_service_name(self):
        parsed = json.loads(StructuredFormatter(service_name="orders").format(_record()))
        assert parsed["service"] == "orders"

    def test_excludes_caller_when_disabled(self):
        parsed = json.loads(StructuredFormatter(include_caller=False).format(_record()))
        assert "module" not in parsed
        assert "line" not in parsed

    def test_includes_structured_fields(self):
        record = _record(fields={"port": 3000, "phase": "ready"})
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["port"] == 3000
        assert parsed["phase"] == "ready"

    def test_fields_do_not_override_core_keys(self):
        record = _record(fields={"message": "spoofed", "level": "DEBUG"})
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["message"] == "hello world"
        assert parsed["level"] == "INFO"

    def test_unserializable_field_rendered_as_string(self):
        marker = object()
        parsed = json.loads(StructuredFormatter().format(_record(fields={"obj": marker})))
        assert parsed["obj"] == str(marker)

    def test_formats_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["exception"]["type"] == "ValueError"
        assert parsed["exception"]["message"] == "boom"
        assert "Traceback" in parsed["exception"]["traceback"]


class TestConsoleFormatter:
    """Tests for colored console output."""

    def test_formats_readable_output(self):
        output = ConsoleFormatter().format(_record())
        assert "hello world" in output
        assert "INFO" in output

    def test_includes_fields(self):
        output = ConsoleFormatter().format(_record(fields={"port": 3000}))
        assert "port=3000" in output

    def test_has_color_codes(self):
        output = ConsoleFormatter().format(_record(level=logging.ERROR))
        assert "\033[31m" in output


class TestStructuredLogger:
    """Tests for the fields-first logger adapter."""

    def test_get_logger(self):
        log = get_logger("test.module")
        assert isinstance(log, StructuredLogger)
        assert log.name == "test.module"

    def test_fields_attached_to_record(self, caplog):
        log = get_logger("test.structured")
        with caplog.at_level(logging.INFO, logger="test.structured"):
            log.info({"port": 3000}, "Health check server listening")
        record = caplog.records[-1]
        assert record.getMessage() == "Health check server listening"
        assert record.fields == {"port": 3000}

    def test_none_fields(self, caplog):
        log = get_logger("test.structured")
        with caplog.at_level(logging.WARNING, logger="test.structured"):
            log.warning(None, "careful")
        assert caplog.records[-1].fields == {}

    def test_error_with_exception(self, caplog):
        log = get_logger("test.structured")
        error = RuntimeError("boom")
        with caplog.at_level(logging.ERROR, logger="test.structured"):
            log.error({"step": "on_shutdown"}, "Error during shutdown", exc_info=error)
        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.exc_info[1] is error

    def test_reports_caller_location(self, caplog):
        log = get_logger("test.structured")
        with caplog.at_level(logging.INFO, logger="test.structured"):
            log.info({}, "where")
        assert caplog.records[-1].funcName == "test_reports_caller_location"


class TestConfigureLogging:
    """Tests for the configure_logging setup function."""

    def test_configures_root_logger(self, restore_root_logger):
        configure_logging(LoggingConfig(format=LogFormat.CONSOLE))
        assert len(restore_root_logger.handlers) == 1

    def test_json_format(self, restore_root_logger):
        configure_logging(LoggingConfig(format=LogFormat.JSON))
        assert isinstance(restore_root_logger.handlers[0].formatter, StructuredFormatter)

    def test_console_format(self, restore_root_logger):
        configure_logging(LoggingConfig(format=LogFormat.CONSOLE))
        assert isinstance(restore_root_logger.handlers[0].formatter, ConsoleFormatter)

    def test_sets_log_level(self, restore_root_logger):
        configure_logging(LoggingConfig(level=LogLevel.DEBUG))
        assert restore_root_logger.level == logging.DEBUG

    def test_quiets_noisy_loggers(self, restore_root_logger):
        configure_logging()
        assert logging.getLogger("uvicorn.access").level >= logging.WARNING

    def test_returns_effective_config(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        config = configure_logging(LoggingConfig(level=LogLevel.ERROR))
        assert config.level == LogLevel.DEBUG
        assert restore_root_logger.level == logging.DEBUG


class TestResolveLoggingConfig:
    """Tests for environment overrides."""

    def test_defaults_without_env(self, restore_root_logger):
        assert resolve_logging_config() == DEFAULT_LOGGING_CONFIG

    def test_log_format_override(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "CONSOLE")
        assert resolve_logging_config().format == LogFormat.CONSOLE

    def test_app_env_selects_console(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("APP_ENV", "development")
        assert resolve_logging_config().format == LogFormat.CONSOLE

    def test_log_format_wins_over_app_env(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("APP_ENV", "local")
        monkeypatch.setenv("LOG_FORMAT", "json")
        assert resolve_logging_config().format == LogFormat.JSON

    def test_invalid_values_ignored(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        monkeypatch.setenv("LOG_FORMAT", "xml")
        config = resolve_logging_config(LoggingConfig(level=LogLevel.WARNING))
        assert config.level == LogLevel.WARNING
        assert config.format == LogFormat.JSON

    def test_does_not_mutate_input(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        config = LoggingConfig()
        resolve_logging_config(config)
        assert config.level == LogLevel.INFO
