"""Synchronous publish/subscribe for lifecycle and user-defined events."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Union

from .config import EventBusConfig, LifecycleEventType
from .schema import LifecycleEvent

logger = logging.getLogger(__name__)

EventName = Union[str, LifecycleEventType]
Listener = Callable[..., Any]
LifecycleListener = Callable[[LifecycleEvent], Any]


def _key(event: EventName) -> str:
    return event.value if isinstance(event, LifecycleEventType) else event


class EventBus:
    """Event emitter with per-name listener lists.

    Listeners run synchronously, in registration order, on the caller's
    stack. Exceptions raised by a listener propagate out of ``emit`` and
    stop the remaining listeners for that emission.
    """

    def __init__(self, config: Optional[EventBusConfig] = None) -> None:
        self.config = config or EventBusConfig()
        self._listeners: dict[str, list[Listener]] = {}
        self._lifecycle_subscribers: list[LifecycleListener] = []
        self._warned: set[str] = set()

    def on(self, event: EventName, listener: Listener) -> EventBus:
        """Register ``listener`` for ``event``. Returns self for chaining."""
        if not callable(listener):
            raise TypeError(f"Listener for '{_key(event)}' must be callable")
        name = _key(event)
        listeners = self._listeners.setdefault(name, [])
        listeners.append(listener)
        self._check_leak(name, len(listeners))
        return self

    def once(self, event: EventName, listener: Listener) -> EventBus:
        """Register ``listener`` to run on the next emission of ``event`` only."""
        name = _key(event)

        def wrapper(*args: Any) -> Any:
            self.off(name, wrapper)
            return listener(*args)

        wrapper.listener = listener  # type: ignore[attr-defined]
        return self.on(name, wrapper)

    def off(self, event: EventName, listener: Listener) -> EventBus:
        """Remove the most recently added registration of ``listener``."""
        name = _key(event)
        listeners = self._listeners.get(name, [])
        for i in range(len(listeners) - 1, -1, -1):
            registered = listeners[i]
            if registered is listener or getattr(registered, "listener", None) is listener:
                del listeners[i]
                break
        if not listeners:
            self._listeners.pop(name, None)
        return self

    def emit(self, event: EventName, *args: Any) -> bool:
        """Invoke every listener of ``event`` with ``args``.

        Returns True iff at least one listener was invoked.
        """
        # copy so listeners may add/remove registrations while running
        listeners = list(self._listeners.get(_key(event), ()))
        for listener in listeners:
            listener(*args)
        return bool(listeners)

    def subscribe(self, listener: LifecycleListener) -> EventBus:
        """Register a typed listener receiving every published lifecycle event."""
        if not callable(listener):
            raise TypeError("Lifecycle subscriber must be callable")
        self._lifecycle_subscribers.append(listener)
        return self

    def unsubscribe(self, listener: LifecycleListener) -> bool:
        """Remove a typed lifecycle listener."""
        try:
            self._lifecycle_subscribers.remove(listener)
        except ValueError:
            return False
        return True

    def publish(self, event: LifecycleEvent) -> bool:
        """Deliver a built-in lifecycle event.

        Typed subscribers receive the event object first, then the
        string-keyed listeners of its name receive its positional args.
        """
        subscribers = list(self._lifecycle_subscribers)
        for subscriber in subscribers:
            subscriber(event)
        emitted = self.emit(event.type, *event.args)
        return emitted or bool(subscribers)

    def listener_count(self, event: EventName) -> int:
        """Number of listeners registered for ``event``."""
        return len(self._listeners.get(_key(event), ()))

    def event_names(self) -> list[str]:
        """Names with at least one registered listener."""
        return list(self._listeners)

    def remove_all_listeners(self, event: Optional[EventName] = None) -> EventBus:
        """Drop listeners for ``event``, or every listener when omitted."""
        if event is None:
            self._listeners.clear()
            self._lifecycle_subscribers.clear()
        else:
            self._listeners.pop(_key(event), None)
        return self

    def _check_leak(self, name: str, count: int) -> None:
        limit = self.config.max_listeners
        if limit and count > limit and name not in self._warned:
            self._warned.add(name)
            logger.warning(
                "Possible listener leak: %d listeners registered for '%s' (max %d)",
                count,
                name,
                limit,
            )
