"""Signal handler registration for graceful shutdown."""

import asyncio
import signal
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Set

from src.logging_config import get_logger

from .interfaces import TerminateCallback

logger = get_logger(__name__)

DEFAULT_SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)

OnSignalCallback = Callable[[signal.Signals], Awaitable[None]]


class AsyncioSignalRegistrar:
    """Routes OS termination signals to async callbacks on the running loop.

    Each received signal schedules one run of every registered callback.
    Tasks stay referenced until they settle, and since the default
    handlers are replaced the process keeps running until a callback
    decides to exit.
    """

    def __init__(
        self,
        signals: Sequence[int] = DEFAULT_SHUTDOWN_SIGNALS,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._signals = [signal.Signals(s) for s in signals]
        self._loop = loop
        self._callbacks: List[OnSignalCallback] = []
        self._registered: List[signal.Signals] = []
        self._tasks: Set["asyncio.Task[Any]"] = set()
        self._signal_count = 0

    @property
    def signal_count(self) -> int:
        """Number of termination signals received."""
        return self._signal_count

    def register(self, on_terminate: TerminateCallback) -> None:
        """Invoke ``on_terminate()`` once per received termination signal."""

        async def callback(sig: signal.Signals) -> None:
            await on_terminate()

        self.register_signal_callback(callback)

    def register_signal_callback(self, callback: OnSignalCallback) -> None:
        """Invoke ``callback(signal)`` once per received termination signal."""
        self._callbacks.append(callback)
        if self._registered:
            return

        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        for sig in self._signals:
            loop.add_signal_handler(sig, self._handle_signal, sig)
            self._registered.append(sig)
            logger.info({"signal": sig.name}, "Registered shutdown signal handler")

    def _handle_signal(self, sig: signal.Signals) -> None:
        self._signal_count += 1
        logger.info(
            {"signal": sig.name, "count": self._signal_count},
            "Signal received, initiating graceful shutdown",
        )
        for callback in list(self._callbacks):
            task = self._loop.create_task(self._run_callback(callback, sig))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _run_callback(self, callback: OnSignalCallback, sig: signal.Signals) -> None:
        try:
            await callback(sig)
        except Exception as exc:
            logger.error(
                {"signal": sig.name, "error": str(exc)},
                "Shutdown callback failed",
                exc_info=exc,
            )

    def restore(self) -> None:
        """Remove the installed handlers, restoring default signal behavior."""
        for sig in self._registered:
            self._loop.remove_signal_handler(sig)
            logger.info({"signal": sig.name}, "Removed shutdown signal handler")
        self._registered.clear()
        self._callbacks.clear()

    async def wait_for_pending(self) -> None:
        """Wait for callbacks already triggered by signals to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def get_state(self) -> Dict[str, Any]:
        """Return current registrar state."""
        return {
            "signal_count": self._signal_count,
            "registered_signals": [s.name for s in self._registered],
            "callback_count": len(self._callbacks),
            "pending_callbacks": len(self._tasks),
        }


def setup_shutdown_handlers(
    on_shutdown: Optional[OnSignalCallback] = None,
    terminate: Callable[[int], Any] = sys.exit,
    signals: Sequence[int] = DEFAULT_SHUTDOWN_SIGNALS,
) -> AsyncioSignalRegistrar:
    """Register SIGTERM and SIGINT handlers for a standalone graceful shutdown.

    On signal:
    1. The signal is logged
    2. ``on_shutdown(signal)`` is awaited if provided
    3. The process exits with status 0

    Errors during shutdown are logged but don't prevent process exit.
    Must be called from within a running event loop.
    """

    async def handle(sig: signal.Signals) -> None:
        try:
            if on_shutdown is not None:
                await on_shutdown(sig)
        except Exception as exc:
            logger.error(
                {"signal": sig.name, "error": str(exc)},
                "Error during shutdown",
                exc_info=exc,
            )
        terminate(0)

    registrar = AsyncioSignalRegistrar(signals)
    registrar.register_signal_callback(handle)
    return registrar
