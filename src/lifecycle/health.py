"""Health snapshot computation.

Combines dependency readiness flags with the optional custom health
predicate and ping callback into one immutable snapshot per query.
"""

import inspect
import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .config import RESERVED_HEALTH_KEYS, LifecycleConfig
from .errors import HealthCheckError
from .registry import DependencyHealthRegistry

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Wall-clock time in integer milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class HealthState:
    """Point-in-time health report."""

    healthy: bool
    timestamp: int
    dependencies: Optional[Mapping[str, bool]] = None
    details: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a field of the flattened report by name."""
        return self.to_dict().get(key, default)

    def __getitem__(self, key: str) -> Any:
        data = self.to_dict()
        if key not in data:
            raise KeyError(key)
        return data[key]

    def to_dict(self) -> Dict[str, Any]:
        """Flatten to the JSON body shape served by the health endpoint."""
        data: Dict[str, Any] = {"healthy": self.healthy, "timestamp": self.timestamp}
        if self.dependencies is not None:
            data["dependencies"] = dict(self.dependencies)
        for key, value in self.details.items():
            if key not in RESERVED_HEALTH_KEYS:
                data[key] = value
        return data


class HealthStateAggregator:
    """Builds HealthState snapshots on demand.

    Read-only with respect to the registry and free of per-call shared
    state, so it can be awaited concurrently from many requests.
    """

    def __init__(self, registry: DependencyHealthRegistry, config: LifecycleConfig):
        self.registry = registry
        self.config = config

    async def compute_health(self) -> HealthState:
        """Compute a fresh health snapshot.

        Raises:
            HealthCheckError: if ``is_healthy`` or ``on_ping`` raises.
        """
        healthy = await self._evaluate_healthy()
        extra = await self._collect_ping_fields()

        return HealthState(
            healthy=healthy,
            timestamp=now_ms(),
            dependencies=self.registry.snapshot(),
            details=MappingProxyType(extra),
        )

    async def _evaluate_healthy(self) -> bool:
        if self.config.is_healthy is None:
            return self.registry.all_ready()
        try:
            result = self.config.is_healthy()
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            raise HealthCheckError(
                f"is_healthy failed: {exc}", source="is_healthy"
            ) from exc
        return bool(result)

    async def _collect_ping_fields(self) -> Dict[str, Any]:
        if self.config.on_ping is None:
            return {}
        try:
            extra = dict(await self.config.on_ping() or {})
        except Exception as exc:
            raise HealthCheckError(
                f"on_ping failed: {exc}", source="on_ping"
            ) from exc

        shadowed = sorted(RESERVED_HEALTH_KEYS.intersection(extra))
        if shadowed:
            logger.warning("Ignoring reserved health keys returned by on_ping: %s", shadowed)
            for key in shadowed:
                del extra[key]
        return extra
