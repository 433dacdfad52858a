"""Lifecycle Exception Hierarchy.

Typed errors raised by the lifecycle controller and its collaborators,
grouped by the phase in which they occur.
"""

from typing import Any, Dict, Optional


class LifecycleError(Exception):
    """Base exception for all lifecycle errors.

    Callers can catch the whole hierarchy with a single handler.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert the error to a dictionary for logging."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(LifecycleError):
    """Raised at construction when the lifecycle configuration is malformed."""


class InitializationError(LifecycleError):
    """Raised when a collaborator cannot be brought up during init()."""

    def __init__(self, message: str, step: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.step = step
        self.details.setdefault("step", step)


class HealthCheckError(LifecycleError):
    """Raised when a custom health callback fails while computing health."""

    def __init__(self, message: str, source: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.source = source
        self.details.setdefault("source", source)


class ShutdownError(LifecycleError):
    """Cleanup failure during shutdown. Logged and recorded, never raised."""

    def __init__(self, message: str, step: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.step = step
        self.details.setdefault("step", step)


class LifecycleStateError(LifecycleError):
    """Raised when an operation is invoked from a phase that does not allow it."""

    def __init__(self, operation: str, phase: Any):
        phase_value = getattr(phase, "value", phase)
        super().__init__(
            f"Cannot {operation}() while lifecycle is '{phase_value}'",
            {"operation": operation, "phase": phase_value},
        )
        self.operation = operation
        self.phase = phase
