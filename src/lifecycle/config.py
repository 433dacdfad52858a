"""Configuration for service lifecycle orchestration."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple, Union

from .errors import ConfigurationError


class LifecyclePhase(str, Enum):
    """Controller lifecycle phases."""
    CREATED = "created"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"
    SHUTTING_DOWN = "shutting_down"
    DONE = "done"


# Phases from which shutdown() may start a shutdown sequence
SHUTDOWN_ALLOWED_PHASES = (LifecyclePhase.READY, LifecyclePhase.FAILED)

# Health endpoint defaults
DEFAULT_HEALTH_PORT = 3000
DEFAULT_HEALTH_HOST = "0.0.0.0"
DEFAULT_HEALTH_PATH = "/health"
DEFAULT_SERVICE_NAME = "service"

# Keys computed by the aggregator; on_ping fields may not shadow them
RESERVED_HEALTH_KEYS = frozenset({"healthy", "timestamp", "dependencies"})

OnInitCallback = Callable[[], Awaitable[None]]
OnPingCallback = Callable[[], Awaitable[Mapping[str, Any]]]
IsHealthyCallback = Callable[[], Union[bool, Awaitable[bool]]]
OnFailureCallback = Callable[[BaseException], Awaitable[None]]
OnShutdownCallback = Callable[[], Awaitable[None]]

_CALLBACK_FIELDS = ("on_init", "on_ping", "is_healthy", "on_failure", "on_shutdown")


@dataclass(frozen=True)
class LifecycleConfig:
    """Declarative lifecycle configuration, immutable after construction.

    on_init: Called during initialization. Open connections, load state, etc.
    on_ping: Called on every health query. Returns extra fields for the report.
    is_healthy: Optional custom health predicate (sync or async). Overrides
        the default "all dependencies ready" rule.
    on_failure: Called with the error when initialization fails.
    on_shutdown: Called during graceful shutdown, after the health endpoint
        has stopped.
    dependencies: Names of tracked dependencies, unique, in declaration order.
    """

    on_init: Optional[OnInitCallback] = None
    on_ping: Optional[OnPingCallback] = None
    is_healthy: Optional[IsHealthyCallback] = None
    on_failure: Optional[OnFailureCallback] = None
    on_shutdown: Optional[OnShutdownCallback] = None
    dependencies: Tuple[str, ...] = field(default_factory=tuple)
    service_name: str = DEFAULT_SERVICE_NAME
    health_port: int = DEFAULT_HEALTH_PORT
    health_host: str = DEFAULT_HEALTH_HOST
    health_path: str = DEFAULT_HEALTH_PATH

    def __post_init__(self):
        for name in _CALLBACK_FIELDS:
            value = getattr(self, name)
            if value is not None and not callable(value):
                raise ConfigurationError(
                    f"'{name}' must be callable, got {type(value).__name__}",
                    {"field": name},
                )

        if isinstance(self.dependencies, str):
            raise ConfigurationError(
                "'dependencies' must be a sequence of names, not a string",
                {"field": "dependencies"},
            )
        dependencies = tuple(self.dependencies or ())
        seen = set()
        for dep in dependencies:
            if not isinstance(dep, str) or not dep:
                raise ConfigurationError(
                    f"Dependency names must be non-empty strings, got {dep!r}",
                    {"field": "dependencies"},
                )
            if dep in seen:
                raise ConfigurationError(
                    f"Duplicate dependency name '{dep}'",
                    {"field": "dependencies", "name": dep},
                )
            seen.add(dep)
        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "dependencies", dependencies)

        if not isinstance(self.health_port, int) or not 0 <= self.health_port <= 65535:
            raise ConfigurationError(
                f"'health_port' must be an integer in 0..65535, got {self.health_port!r}",
                {"field": "health_port"},
            )
        if not self.health_path.startswith("/"):
            raise ConfigurationError(
                f"'health_path' must start with '/', got {self.health_path!r}",
                {"field": "health_path"},
            )
