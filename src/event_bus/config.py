"""Event bus configuration and built-in event names."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class LifecycleEventType(str, Enum):
    """Names of the four built-in lifecycle events."""

    INIT = "init"
    READY = "ready"
    FAILURE = "failure"
    DONE = "done"


DEFAULT_MAX_LISTENERS = 10


@dataclass(frozen=True)
class EventBusConfig:
    """Configuration for the event bus.

    ``max_listeners`` only triggers a leak warning when exceeded for a
    single event name; 0 disables the warning.
    """

    max_listeners: int = DEFAULT_MAX_LISTENERS
