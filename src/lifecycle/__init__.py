"""Service lifecycle orchestration.

Sequences initialization, aggregates dependency and custom health into
one reportable state, and drives an ordered, failure-tolerant shutdown.
"""

from .config import (
    DEFAULT_HEALTH_PATH,
    DEFAULT_HEALTH_PORT,
    RESERVED_HEALTH_KEYS,
    LifecycleConfig,
    LifecyclePhase,
)
from .errors import (
    ConfigurationError,
    HealthCheckError,
    InitializationError,
    LifecycleError,
    LifecycleStateError,
    ShutdownError,
)
from .health import (
    HealthState,
    HealthStateAggregator,
)
from .healthcheck import (
    HealthCheckServerConfig,
    HealthCheckService,
    UvicornHealthCheckServer,
    create_health_app,
    start_health_check_server,
)
from .interfaces import (
    HealthCheckServer,
    HealthCheckStatus,
    ServerHandle,
    ShutdownSignalRegistrar,
    StructuredLogger,
)
from .manager import (
    LifecycleController,
    PhaseTransition,
    define_lifecycle,
)
from .registry import DependencyHealthRegistry
from .signals import (
    AsyncioSignalRegistrar,
    setup_shutdown_handlers,
)

__all__ = [
    # Config
    "DEFAULT_HEALTH_PATH",
    "DEFAULT_HEALTH_PORT",
    "RESERVED_HEALTH_KEYS",
    "LifecycleConfig",
    "LifecyclePhase",
    # Errors
    "ConfigurationError",
    "HealthCheckError",
    "InitializationError",
    "LifecycleError",
    "LifecycleStateError",
    "ShutdownError",
    # Health
    "DependencyHealthRegistry",
    "HealthState",
    "HealthStateAggregator",
    # Collaborators
    "AsyncioSignalRegistrar",
    "HealthCheckServer",
    "HealthCheckServerConfig",
    "HealthCheckService",
    "HealthCheckStatus",
    "ServerHandle",
    "ShutdownSignalRegistrar",
    "StructuredLogger",
    "UvicornHealthCheckServer",
    "create_health_app",
    "setup_shutdown_handlers",
    "start_health_check_server",
    # Controller
    "LifecycleController",
    "PhaseTransition",
    "define_lifecycle",
]
