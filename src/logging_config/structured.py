"""Structured logger adapter.

Exposes ``info(fields, message)`` style calls on top of a standard
library logger. Fields travel on the record so both formatters can
render them.
"""

import logging
from typing import Any, Mapping, Optional

from src.logging_config.setup import FIELDS_ATTR


class StructuredLogger:
    """Adapter writing structured fields through a stdlib logger.

    Example:
        log = get_logger(__name__)
        log.info({"port": 3000}, "Health check server listening")
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @property
    def name(self) -> str:
        return self.logger.name

    def debug(self, fields: Optional[Mapping[str, Any]], message: str) -> None:
        self._log(logging.DEBUG, fields, message)

    def info(self, fields: Optional[Mapping[str, Any]], message: str) -> None:
        self._log(logging.INFO, fields, message)

    def warning(self, fields: Optional[Mapping[str, Any]], message: str) -> None:
        self._log(logging.WARNING, fields, message)

    def error(
        self,
        fields: Optional[Mapping[str, Any]],
        message: str,
        exc_info: Any = None,
    ) -> None:
        self._log(logging.ERROR, fields, message, exc_info=exc_info)

    def _log(
        self,
        level: int,
        fields: Optional[Mapping[str, Any]],
        message: str,
        exc_info: Any = None,
    ) -> None:
        self.logger.log(
            level,
            message,
            exc_info=exc_info,
            extra={FIELDS_ATTR: dict(fields or {})},
            stacklevel=3,
        )


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for ``name`` (typically ``__name__``).

    When configure_logging() has been called, all output goes through
    the structured formatter.
    """
    return StructuredLogger(logging.getLogger(name))
