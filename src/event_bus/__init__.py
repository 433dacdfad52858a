"""Lifecycle event bus."""

from .config import (
    DEFAULT_MAX_LISTENERS,
    EventBusConfig,
    LifecycleEventType,
)
from .schema import (
    Done,
    Failure,
    Init,
    LifecycleEvent,
    Ready,
)
from .bus import EventBus

__all__ = [
    # Config
    "DEFAULT_MAX_LISTENERS",
    "EventBusConfig",
    "LifecycleEventType",
    # Schema
    "Done",
    "Failure",
    "Init",
    "LifecycleEvent",
    "Ready",
    # Bus
    "EventBus",
]
