"""Structured Logging.

Provides structured JSON logging and a fields-first logger adapter
for the lifecycle orchestrator.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    resolve_logging_config,
)
from src.logging_config.structured import StructuredLogger, get_logger

__all__ = [
    "ConsoleFormatter",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "StructuredFormatter",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "resolve_logging_config",
]
