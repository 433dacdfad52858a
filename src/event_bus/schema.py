"""Lifecycle event variants.

The four built-in events form a closed set. Each variant knows its
event name and the positional arguments string-keyed listeners receive.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from .config import LifecycleEventType


@dataclass(frozen=True)
class Init:
    """Initialization has started."""

    type: ClassVar[LifecycleEventType] = LifecycleEventType.INIT

    @property
    def args(self) -> tuple[Any, ...]:
        return ()


@dataclass(frozen=True)
class Ready:
    """Initialization completed and the service is serving."""

    type: ClassVar[LifecycleEventType] = LifecycleEventType.READY

    @property
    def args(self) -> tuple[Any, ...]:
        return ()


@dataclass(frozen=True)
class Failure:
    """Initialization failed with ``error``."""

    error: BaseException
    type: ClassVar[LifecycleEventType] = LifecycleEventType.FAILURE

    @property
    def args(self) -> tuple[Any, ...]:
        return (self.error,)


@dataclass(frozen=True)
class Done:
    """Shutdown sequence completed."""

    type: ClassVar[LifecycleEventType] = LifecycleEventType.DONE

    @property
    def args(self) -> tuple[Any, ...]:
        return ()


LifecycleEvent = Union[Init, Ready, Failure, Done]
