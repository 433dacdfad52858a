"""Logging Setup.

One-call configuration for structured logging.
Supports JSON output for production and colored console for development.
"""

import json
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from src.logging_config.config import (
    DEFAULT_LOGGING_CONFIG,
    DEVELOPMENT_ENVIRONMENTS,
    LogFormat,
    LoggingConfig,
    LogLevel,
)

# Attribute on LogRecord carrying structured fields (set via ``extra``)
FIELDS_ATTR = "fields"


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter.

    Produces one JSON object per log line with consistent fields:
    timestamp, level, logger, message, plus any structured fields
    attached to the record.
    """

    def __init__(self, service_name: str = "service", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if self.include_caller:
            log_entry["module"] = record.module
            log_entry["function"] = record.funcName
            log_entry["line"] = record.lineno

        fields = getattr(record, FIELDS_ATTR, None)
        if fields:
            for key, value in fields.items():
                log_entry.setdefault(key, value)

        # Include exception info if present
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        # default=str keeps values json cannot encode instead of dropping the line
        return json.dumps(log_entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for development.

    Produces human-readable log lines with color-coded levels.
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]

        fields = getattr(record, FIELDS_ATTR, None)
        fields_str = ""
        if fields:
            parts = [f"{k}={v}" for k, v in fields.items()]
            fields_str = f" [{', '.join(parts)}]"

        line = (
            f"{color}{timestamp} {record.levelname:8s}{self.RESET} "
            f"{record.name}: {record.getMessage()}{fields_str}"
        )

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)

        return line


def resolve_logging_config(config: Optional[LoggingConfig] = None) -> LoggingConfig:
    """Apply environment overrides to a logging configuration.

    LOG_LEVEL overrides the level. LOG_FORMAT overrides the format;
    without it, APP_ENV set to a development environment selects the
    console format.
    """
    config = config or DEFAULT_LOGGING_CONFIG

    env_level = os.environ.get("LOG_LEVEL", "").upper()
    if env_level and env_level in LogLevel.__members__:
        config = replace(config, level=LogLevel(env_level))

    env_format = os.environ.get("LOG_FORMAT", "").lower()
    if env_format and env_format in [f.value for f in LogFormat]:
        config = replace(config, format=LogFormat(env_format))
    elif os.environ.get("APP_ENV", "").lower() in DEVELOPMENT_ENVIRONMENTS:
        config = replace(config, format=LogFormat.CONSOLE)

    return config


def configure_logging(config: Optional[LoggingConfig] = None) -> LoggingConfig:
    """Configure structured logging for the service.

    Call once at startup. Sets up the root logger with the appropriate
    formatter (JSON or console) and log level, and returns the effective
    configuration after environment overrides.
    """
    config = resolve_logging_config(config)

    # Choose formatter
    if config.format == LogFormat.JSON:
        formatter = StructuredFormatter(
            service_name=config.service_name,
            include_caller=config.include_caller,
        )
    else:
        formatter = ConsoleFormatter()

    # Configure root logger
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.level.value))

    # Quiet noisy third-party loggers
    for noisy in ("asyncio", "uvicorn.access", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return config
