"""LifecycleController orchestrating startup, health reporting and shutdown."""

import asyncio
import sys
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from src.event_bus import Done, EventBus, Failure, Init, Ready
from src.event_bus.bus import EventName, LifecycleListener, Listener
from src.logging_config import get_logger

from .config import SHUTDOWN_ALLOWED_PHASES, LifecycleConfig, LifecyclePhase
from .errors import InitializationError, LifecycleStateError, ShutdownError
from .health import HealthState, HealthStateAggregator
from .healthcheck import UvicornHealthCheckServer
from .interfaces import HealthCheckServer, ServerHandle, ShutdownSignalRegistrar, StructuredLogger
from .registry import DependencyHealthRegistry
from .signals import AsyncioSignalRegistrar

HEALTH_ERROR_BODY = {"healthy": False, "error": "Failed to get health state"}


@dataclass
class PhaseTransition:
    """Record of a lifecycle phase change."""

    from_phase: LifecyclePhase
    to_phase: LifecyclePhase
    details: str = ""
    duration_ms: float = 0.0
    created_at: datetime = field(default_factory=datetime.now)


class LifecycleController:
    """Sequences service initialization and graceful shutdown.

    Owns the dependency registry, the health aggregator and the event
    bus, and drives the health check server and signal registrar
    collaborators. Phases only move forward:

        created -> initializing -> ready | failed -> shutting_down -> done

    A controller is single-use; construct a new one to retry after a
    failed initialization.
    """

    def __init__(
        self,
        config: Optional[LifecycleConfig] = None,
        *,
        health_server: Optional[HealthCheckServer] = None,
        signal_registrar: Optional[ShutdownSignalRegistrar] = None,
        logger: Optional[StructuredLogger] = None,
        event_bus: Optional[EventBus] = None,
        terminate: Optional[Callable[[int], Any]] = sys.exit,
    ):
        self.config = config or LifecycleConfig()
        self.registry = DependencyHealthRegistry()
        self.registry.declare(self.config.dependencies)
        self.aggregator = HealthStateAggregator(self.registry, self.config)
        self.events = event_bus or EventBus()
        self.health_server = health_server or UvicornHealthCheckServer()
        self.signal_registrar = signal_registrar or AsyncioSignalRegistrar()
        self._logger = logger or get_logger(__name__)
        self._terminate = terminate

        self._phase = LifecyclePhase.CREATED
        self._server_handle: Optional[ServerHandle] = None
        self._signals_registered = False
        self._history: List[PhaseTransition] = []
        self._shutdown_errors: List[ShutdownError] = []
        self._start_time: Optional[float] = None
        self._stop_time: Optional[float] = None
        self._shutdown_started = 0.0
        self._done_event: Optional[asyncio.Event] = None

    @property
    def phase(self) -> LifecyclePhase:
        """Current lifecycle phase."""
        return self._phase

    @property
    def is_ready(self) -> bool:
        return self._phase == LifecyclePhase.READY

    @property
    def server_handle(self) -> Optional[ServerHandle]:
        """Handle of the started health check server, if any."""
        return self._server_handle

    @property
    def history(self) -> List[PhaseTransition]:
        """All recorded phase transitions."""
        return list(self._history)

    @property
    def shutdown_errors(self) -> List[ShutdownError]:
        """Cleanup errors caught during shutdown."""
        return list(self._shutdown_errors)

    @property
    def uptime_seconds(self) -> float:
        """Seconds since init() was called."""
        if self._start_time is None:
            return 0.0
        end = self._stop_time or time.time()
        return end - self._start_time

    # ── Events ───────────────────────────────────────────────────────

    def on(self, event: EventName, listener: Listener) -> "LifecycleController":
        """Register an event listener. Returns self for chaining."""
        self.events.on(event, listener)
        return self

    def emit(self, event: EventName, *args: Any) -> bool:
        """Emit an event; True iff at least one listener ran."""
        return self.events.emit(event, *args)

    def subscribe(self, listener: LifecycleListener) -> "LifecycleController":
        """Receive every built-in lifecycle event as a typed object."""
        self.events.subscribe(listener)
        return self

    # ── Health ───────────────────────────────────────────────────────

    async def get_health_state(self) -> HealthState:
        """Compute the current health snapshot (any phase)."""
        return await self.aggregator.compute_health()

    async def _handle_health_request(self, request: Request) -> Response:
        """Serve one health request. Never raises."""
        try:
            state = await self.aggregator.compute_health()
            return JSONResponse(state.to_dict(), status_code=200 if state.healthy else 503)
        except Exception as exc:
            self._log_error(
                {"error": str(exc), "error_type": type(exc).__name__},
                "Error getting health state",
                exc,
            )
            return JSONResponse(HEALTH_ERROR_BODY, status_code=503)

    # ── Initialization ───────────────────────────────────────────────

    async def init(self) -> None:
        """Initialize the service.

        Runs on_init, marks dependencies ready, starts the health check
        server and registers for termination signals. On failure the
        controller moves to FAILED, resets the dependency flags, closes a
        health server that already started, emits ``failure``, awaits
        on_failure and re-raises the original error.

        Raises:
            LifecycleStateError: if called from any phase but CREATED.
        """
        if self._phase != LifecyclePhase.CREATED:
            raise LifecycleStateError("init", self._phase)

        start = time.monotonic()
        self._start_time = time.time()
        self._transition(LifecyclePhase.INITIALIZING, "Initialization started")

        try:
            self.events.publish(Init())

            if self.config.on_init is not None:
                await self.config.on_init()

            self.registry.mark_all_ready()
            self._server_handle = await self._start_health_server()
            self._register_signals()
        except Exception as exc:
            await self._fail(exc)
            raise

        duration_ms = (time.monotonic() - start) * 1000
        self._transition(
            LifecyclePhase.READY,
            f"Initialization completed in {duration_ms:.1f}ms",
            duration_ms=duration_ms,
        )
        self.events.publish(Ready())

    async def _start_health_server(self) -> ServerHandle:
        try:
            return await self.health_server.start(
                self._handle_health_request,
                port=self.config.health_port,
                host=self.config.health_host,
                path=self.config.health_path,
            )
        except Exception as exc:
            raise InitializationError(
                f"Health check server failed to start: {exc}",
                step="start_health_server",
                details={"port": self.config.health_port},
            ) from exc

    def _register_signals(self) -> None:
        try:
            self.signal_registrar.register(self.shutdown)
        except Exception as exc:
            raise InitializationError(
                f"Shutdown signal registration failed: {exc}",
                step="register_signals",
            ) from exc
        self._signals_registered = True

    async def _fail(self, error: Exception) -> None:
        self._transition(LifecyclePhase.FAILED, str(error))
        self._log_error(
            {"error": str(error), "error_type": type(error).__name__},
            "Lifecycle initialization failed",
            error,
        )

        # a failed service must not keep reporting ready dependencies
        self.registry.mark_all_not_ready()
        if self._server_handle is not None:
            handle, self._server_handle = self._server_handle, None
            try:
                await handle.close()
            except Exception as exc:
                self._log_error(
                    {"error": str(exc), "error_type": type(exc).__name__},
                    "Error closing health check server after failed init",
                    exc,
                )

        try:
            self.events.publish(Failure(error))
        except Exception as exc:
            self._log_error({"error": str(exc)}, "Failure listener raised", exc)

        if self.config.on_failure is not None:
            try:
                await self.config.on_failure(error)
            except Exception as exc:
                raise exc from error

    # ── Shutdown ─────────────────────────────────────────────────────

    async def shutdown(self) -> None:
        """Gracefully shut down and exit the process with status 0.

        Closes the health check server, then awaits on_shutdown, emits
        ``done`` and calls ``terminate(0)``. Cleanup errors are logged and
        never prevent the exit, and a cancelled cleanup still completes
        the sequence before the cancellation propagates. Calls made while
        a shutdown is running or after it completed do nothing.
        """
        if not self._begin_shutdown():
            return
        try:
            await self._run_cleanup()
        finally:
            self._complete_shutdown()
            if self._terminate is not None:
                self._log_info({"exit_code": 0}, "Exiting process")
                self._terminate(0)

    async def run_shutdown_sequence(self) -> bool:
        """Run the shutdown steps without terminating the process.

        Returns True if this call performed the shutdown, False if one was
        already running or done.

        Raises:
            LifecycleStateError: if init() has not completed or failed yet.
        """
        if not self._begin_shutdown():
            return False
        try:
            await self._run_cleanup()
        finally:
            self._complete_shutdown()
        return True

    def _begin_shutdown(self) -> bool:
        if self._phase in (LifecyclePhase.SHUTTING_DOWN, LifecyclePhase.DONE):
            self._log_warning({"phase": self._phase.value}, "Shutdown already in progress or completed")
            return False
        if self._phase not in SHUTDOWN_ALLOWED_PHASES:
            raise LifecycleStateError("shutdown", self._phase)

        self._shutdown_started = time.monotonic()
        self._transition(LifecyclePhase.SHUTTING_DOWN, "Graceful shutdown initiated")
        return True

    async def _run_cleanup(self) -> None:
        # health endpoint stops accepting requests before user cleanup
        if self._server_handle is not None:
            try:
                await self._server_handle.close()
            except Exception as exc:
                self._record_shutdown_error("close_health_server", exc)

        if self.config.on_shutdown is not None:
            try:
                await self.config.on_shutdown()
            except Exception as exc:
                self._record_shutdown_error("on_shutdown", exc)

    def _complete_shutdown(self) -> None:
        if self._signals_registered:
            try:
                self.signal_registrar.restore()
            except Exception as exc:
                self._record_shutdown_error("restore_signals", exc)
            self._signals_registered = False

        self._stop_time = time.time()
        duration_ms = (time.monotonic() - self._shutdown_started) * 1000
        self._transition(
            LifecyclePhase.DONE,
            f"Shutdown completed in {duration_ms:.1f}ms",
            duration_ms=duration_ms,
        )
        if self._done_event is not None:
            self._done_event.set()

        try:
            self.events.publish(Done())
        except Exception as exc:
            self._log_error({"error": str(exc)}, "Done listener raised", exc)

    def _record_shutdown_error(self, step: str, error: Exception) -> None:
        shutdown_error = ShutdownError(f"{step} failed: {error}", step=step)
        shutdown_error.__cause__ = error
        self._shutdown_errors.append(shutdown_error)
        self._log_error(
            {"step": step, "error": str(error), "error_type": type(error).__name__},
            "Error during shutdown",
            error,
        )

    async def wait_until_done(self) -> None:
        """Block until the shutdown sequence has completed."""
        if self._phase == LifecyclePhase.DONE:
            return
        if self._done_event is None:
            self._done_event = asyncio.Event()
        await self._done_event.wait()

    # ── Status & bookkeeping ─────────────────────────────────────────

    def get_status(self) -> Dict[str, Any]:
        """Get comprehensive lifecycle status."""
        server = None
        if self._server_handle is not None:
            server_status = self._server_handle.status()
            server = {"listening": server_status.listening, "port": server_status.port}
        dependencies = self.registry.snapshot()
        return {
            "service_name": self.config.service_name,
            "phase": self._phase.value,
            "uptime_seconds": self.uptime_seconds,
            "dependencies": dict(dependencies) if dependencies is not None else None,
            "health_server": server,
            "transition_count": len(self._history),
            "shutdown_errors": [e.to_dict() for e in self._shutdown_errors],
        }

    def _transition(
        self, phase: LifecyclePhase, details: str = "", duration_ms: float = 0.0
    ) -> PhaseTransition:
        transition = PhaseTransition(
            from_phase=self._phase,
            to_phase=phase,
            details=details,
            duration_ms=duration_ms,
        )
        self._phase = phase
        self._history.append(transition)
        self._log_info(
            {"from_phase": transition.from_phase.value, "phase": phase.value, "duration_ms": round(duration_ms, 2)},
            f"Lifecycle phase: {phase.value} - {details}" if details else f"Lifecycle phase: {phase.value}",
        )
        return transition

    def _log_info(self, fields: Mapping[str, Any], message: str) -> None:
        self._log("info", fields, message)

    def _log_warning(self, fields: Mapping[str, Any], message: str) -> None:
        self._log("warning", fields, message)

    def _log_error(self, fields: Mapping[str, Any], message: str, error: Optional[BaseException] = None) -> None:
        self._log("error", fields, message, error)

    def _log(
        self,
        level: str,
        fields: Mapping[str, Any],
        message: str,
        error: Optional[BaseException] = None,
    ) -> None:
        payload = {"service": self.config.service_name, **fields}
        try:
            if error is not None:
                getattr(self._logger, level)(payload, message, exc_info=error)
            else:
                getattr(self._logger, level)(payload, message)
        except Exception:
            # a broken logger must not change lifecycle outcomes
            pass


def define_lifecycle(
    config: Optional[LifecycleConfig] = None,
    *,
    health_server: Optional[HealthCheckServer] = None,
    signal_registrar: Optional[ShutdownSignalRegistrar] = None,
    logger: Optional[StructuredLogger] = None,
    event_bus: Optional[EventBus] = None,
    terminate: Optional[Callable[[int], Any]] = sys.exit,
    **config_fields: Any,
) -> LifecycleController:
    """Define a service lifecycle with sensible defaults.

    Handles the HTTP health endpoint (port 3000 unless configured),
    graceful shutdown on SIGTERM/SIGINT, dependency health tracking and
    the init/ready/failure/done events. The service only supplies what
    is special about it.

    Example:
        lifecycle = define_lifecycle(
            dependencies=["mongodb", "rabbitmq"],
            on_init=connect_all,
            on_ping=report_counters,
            on_shutdown=close_all,
        )
        await lifecycle.init()
    """
    if config is None:
        config = LifecycleConfig(**config_fields)
    elif config_fields:
        config = replace(config, **config_fields)
    return LifecycleController(
        config,
        health_server=health_server,
        signal_registrar=signal_registrar,
        logger=logger,
        event_bus=event_bus,
        terminate=terminate,
    )
